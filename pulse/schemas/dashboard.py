"""Dashboard schemas."""

from uuid import UUID

from pydantic import BaseModel


class TopCoupon(BaseModel):
    coupon_id: UUID
    title: str
    issued_count: int


class SentimentDistribution(BaseModel):
    happy: int = 0
    neutral: int = 0
    concerned: int = 0


class EngagementCounts(BaseModel):
    code_copied: int = 0
    downloaded: int = 0
    wallet_added: int = 0


class DashboardMetricsResponse(BaseModel):
    total_responses: int
    unique_sessions: int
    issued_coupons: int
    redeemed_coupons: int
    redemption_rate: float
    email_opt_ins: int
    happiness_score: float
    sentiment_distribution: SentimentDistribution
    engagement: EngagementCounts
    top_coupon: TopCoupon | None = None
