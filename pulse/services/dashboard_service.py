"""Dashboard metrics for a tenant's admin home page."""

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from pulse.core.tenant import TenantResolver
from pulse.models.survey_question import QuestionType
from pulse.repositories.dashboard_repository import CouponIssueCount, DashboardRepository
from pulse.repositories.email_opt_in_repository import EmailOptInRepository
from pulse.repositories.survey_response_repository import SurveyResponseRepository
from pulse.services.results import ServiceResult, fail

logger = logging.getLogger(__name__)

ENGAGEMENT_FLAGS = ("code_copied", "downloaded", "wallet_added")


@dataclass
class DashboardMetrics(ServiceResult):
    total_responses: int = 0
    unique_sessions: int = 0
    issued_coupons: int = 0
    redeemed_coupons: int = 0
    redemption_rate: float = 0.0
    email_opt_ins: int = 0
    happiness_score: float = 0.0
    sentiment_distribution: dict[str, int] = field(
        default_factory=lambda: {"happy": 0, "neutral": 0, "concerned": 0}
    )
    engagement: dict[str, int] = field(
        default_factory=lambda: dict.fromkeys(ENGAGEMENT_FLAGS, 0)
    )
    top_coupon: CouponIssueCount | None = None


def _numeric(answer: Any) -> float | None:
    number = answer.get("number") if isinstance(answer, dict) else None
    if isinstance(number, int | float) and not isinstance(number, bool):
        return float(number)
    return None


def sentiment_distribution(
    sentiment_answers: list[Any], nps_answers: list[Any]
) -> dict[str, int]:
    """Bucket sentiment (1-5) answers, falling back to NPS (0-10) answers.

    Sentiment: 4-5 happy, 3 neutral, below concerned. NPS: 7+ happy, 4-6
    neutral, below concerned.
    """
    buckets = {"happy": 0, "neutral": 0, "concerned": 0}
    sentiment = [v for v in map(_numeric, sentiment_answers) if v is not None]
    nps = [v for v in map(_numeric, nps_answers) if v is not None]

    for value in sentiment:
        if value >= 4:
            buckets["happy"] += 1
        elif value == 3:
            buckets["neutral"] += 1
        else:
            buckets["concerned"] += 1

    if sum(buckets.values()) == 0:
        for value in nps:
            if value >= 7:
                buckets["happy"] += 1
            elif value >= 4:
                buckets["neutral"] += 1
            else:
                buckets["concerned"] += 1
    return buckets


class DashboardService:
    def __init__(self, db: Session):
        self.db = db

    def get_dashboard_metrics(self, tenant_slug: str) -> DashboardMetrics:
        try:
            # Staff still see their numbers while the tenant is deactivated
            ctx = TenantResolver(self.db).context(tenant_slug, include_inactive=True)
            repo = DashboardRepository(ctx)
            responses = SurveyResponseRepository(ctx)

            metrics = DashboardMetrics(
                total_responses=responses.count(),
                unique_sessions=responses.count_sessions(),
                issued_coupons=repo.count_issued(),
                redeemed_coupons=repo.count_redeemed(),
                email_opt_ins=EmailOptInRepository(ctx).count(),
                top_coupon=repo.top_coupon(),
            )
            if metrics.issued_coupons:
                rate = metrics.redeemed_coupons / metrics.issued_coupons * 100
                metrics.redemption_rate = round(rate, 1)

            metrics.sentiment_distribution = sentiment_distribution(
                repo.answers_for_question_type(QuestionType.SENTIMENT.value),
                repo.answers_for_question_type(QuestionType.NPS.value),
            )
            total_sentiment = sum(metrics.sentiment_distribution.values())
            if total_sentiment:
                happy = metrics.sentiment_distribution["happy"]
                metrics.happiness_score = round(happy / total_sentiment * 100, 1)

            for metadata in repo.engagement_metadata():
                for flag in ENGAGEMENT_FLAGS:
                    if metadata.get(flag):
                        metrics.engagement[flag] += 1
            return metrics
        except Exception as exc:
            return fail(DashboardMetrics(), exc, self.db)
