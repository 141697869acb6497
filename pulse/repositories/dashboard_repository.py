from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_

from pulse.core.tenant import TenantContext
from pulse.models.coupon import Coupon
from pulse.models.issued_coupon import IssuedCoupon, IssuedCouponStatus
from pulse.models.survey_question import SurveyQuestion
from pulse.models.survey_response import SurveyResponse


@dataclass
class CouponIssueCount:
    coupon_id: UUID
    title: str
    issued_count: int


class DashboardRepository:
    def __init__(self, ctx: TenantContext):
        self.ctx = ctx

    def count_issued(self) -> int:
        return self.ctx.query(IssuedCoupon).count()

    def count_redeemed(self) -> int:
        return (
            self.ctx.query(IssuedCoupon)
            .filter(
                or_(
                    IssuedCoupon.status == IssuedCouponStatus.REDEEMED.value,
                    IssuedCoupon.redemptions_count > 0,
                )
            )
            .count()
        )

    def top_coupon(self) -> CouponIssueCount | None:
        issued_count = func.count(IssuedCoupon.id).label("issued_count")
        row = (
            self.ctx.query(IssuedCoupon, IssuedCoupon.coupon_id, Coupon.title, issued_count)
            .join(Coupon, Coupon.id == IssuedCoupon.coupon_id)
            .group_by(IssuedCoupon.coupon_id, Coupon.title)
            .order_by(issued_count.desc(), Coupon.title.asc())
            .first()
        )
        if row is None:
            return None
        return CouponIssueCount(coupon_id=row[0], title=row[1], issued_count=row[2])

    def answers_for_question_type(self, question_type: str) -> list[Any]:
        rows = (
            self.ctx.query(SurveyResponse, SurveyResponse.answer)
            .join(SurveyQuestion, SurveyQuestion.id == SurveyResponse.question_id)
            .filter(SurveyQuestion.type == question_type)
            .all()
        )
        return [row[0] for row in rows]

    def engagement_metadata(self) -> list[dict[str, Any]]:
        rows = self.ctx.query(IssuedCoupon, IssuedCoupon.metadata_).all()
        return [row[0] or {} for row in rows]
