"""IssuedCoupon repository for data access."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import case, or_

from pulse.core.tenant import TenantContext
from pulse.models.coupon import Coupon
from pulse.models.issued_coupon import IssuedCoupon, IssuedCouponStatus


class IssuedCouponRepository:
    """Repository for IssuedCoupon rows of one tenant."""

    def __init__(self, ctx: TenantContext):
        self.ctx = ctx

    def get_by_id(self, issued_coupon_id: UUID) -> IssuedCoupon | None:
        return self.ctx.query(IssuedCoupon).filter(IssuedCoupon.id == issued_coupon_id).first()

    def get_by_code(self, code: str) -> IssuedCoupon | None:
        return self.ctx.query(IssuedCoupon).filter(IssuedCoupon.code == code).first()

    def get_latest_for_customer(self, coupon_id: UUID, email: str) -> IssuedCoupon | None:
        """Most recently issued row for (coupon, email), regardless of status."""
        return (
            self.ctx.query(IssuedCoupon)
            .filter(IssuedCoupon.coupon_id == coupon_id, IssuedCoupon.email == email)
            .order_by(IssuedCoupon.issued_at.desc())
            .first()
        )

    def exists_for_email(self, email: str) -> bool:
        return (
            self.ctx.query(IssuedCoupon, IssuedCoupon.id)
            .filter(IssuedCoupon.email == email)
            .first()
            is not None
        )

    def has_other_fully_redeemed(self, issued_coupon: IssuedCoupon) -> bool:
        """Whether the same customer holds another, fully redeemed row for this coupon."""
        return (
            self.ctx.query(IssuedCoupon, IssuedCoupon.id)
            .filter(
                IssuedCoupon.coupon_id == issued_coupon.coupon_id,
                IssuedCoupon.email == issued_coupon.email,
                IssuedCoupon.id != issued_coupon.id,
                or_(
                    IssuedCoupon.redemptions_count >= IssuedCoupon.max_redemptions,
                    IssuedCoupon.status == IssuedCouponStatus.REDEEMED.value,
                ),
            )
            .first()
            is not None
        )

    def create(
        self,
        coupon_id: UUID,
        code: str,
        email: str | None,
        max_redemptions: int,
        expires_at: datetime | None,
        issued_at: datetime,
    ) -> IssuedCoupon:
        """Insert and commit a new issued coupon.

        Raises ``IntegrityError`` on a duplicate code or customer; the caller
        is responsible for rolling back the session.
        """
        issued_coupon = IssuedCoupon(
            coupon_id=coupon_id,
            code=code,
            email=email,
            issued_to=email,
            status=IssuedCouponStatus.ISSUED.value,
            redemptions_count=0,
            max_redemptions=max_redemptions,
            issued_at=issued_at,
            expires_at=expires_at,
            metadata_={},
        )
        self.ctx.add(issued_coupon)
        self.ctx.db.commit()
        self.ctx.db.refresh(issued_coupon)
        return issued_coupon

    def mark_expired(self, issued_coupon_id: UUID) -> int:
        rowcount = (
            self.ctx.query(IssuedCoupon)
            .filter(
                IssuedCoupon.id == issued_coupon_id,
                IssuedCoupon.status != IssuedCouponStatus.EXPIRED.value,
            )
            .update(
                {IssuedCoupon.status: IssuedCouponStatus.EXPIRED.value},
                synchronize_session=False,
            )
        )
        self.ctx.db.commit()
        return rowcount

    def redeem(self, issued_coupon: IssuedCoupon, now: datetime) -> int:
        """Consume one redemption in a single conditional UPDATE.

        The row only changes if its status and count are still the ones read
        by the caller, so two concurrent redeems can never both succeed past
        ``max_redemptions``. Returns the number of rows updated (0 or 1).
        """
        reaches_max = IssuedCoupon.redemptions_count + 1 >= IssuedCoupon.max_redemptions
        rowcount = (
            self.ctx.query(IssuedCoupon)
            .filter(
                IssuedCoupon.id == issued_coupon.id,
                IssuedCoupon.status == issued_coupon.status,
                IssuedCoupon.redemptions_count < IssuedCoupon.max_redemptions,
            )
            .update(
                {
                    IssuedCoupon.redemptions_count: IssuedCoupon.redemptions_count + 1,
                    IssuedCoupon.status: case(
                        (reaches_max, IssuedCouponStatus.REDEEMED.value),
                        else_=IssuedCoupon.status,
                    ),
                    IssuedCoupon.redeemed_at: case(
                        (reaches_max, now), else_=IssuedCoupon.redeemed_at
                    ),
                },
                synchronize_session=False,
            )
        )
        self.ctx.db.commit()
        return rowcount

    def update_fields(self, issued_coupon_id: UUID, values: dict[str, Any]) -> int:
        """Apply a literal column update restricted to this tenant; returns rowcount."""
        columns = {getattr(IssuedCoupon, key): value for key, value in values.items()}
        rowcount = (
            self.ctx.query(IssuedCoupon)
            .filter(IssuedCoupon.id == issued_coupon_id)
            .update(columns, synchronize_session=False)
        )
        self.ctx.db.commit()
        return rowcount

    def refresh(self, issued_coupon: IssuedCoupon) -> IssuedCoupon:
        self.ctx.db.refresh(issued_coupon)
        return issued_coupon

    def count(self) -> int:
        return self.ctx.query(IssuedCoupon).count()

    def get_page(self, skip: int, limit: int) -> list[tuple[IssuedCoupon, str | None]]:
        """Issued coupons newest first, each paired with its definition title."""
        return (
            self.ctx.query(IssuedCoupon, IssuedCoupon, Coupon.title)
            .outerjoin(Coupon, Coupon.id == IssuedCoupon.coupon_id)
            .order_by(IssuedCoupon.issued_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
