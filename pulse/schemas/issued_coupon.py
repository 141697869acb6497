"""IssuedCoupon request and response schemas.

Response bodies mirror the result objects returned by
``IssuedCouponService``: a payload plus an explicit ``error`` field.
"""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

from pulse.models.issued_coupon import IssuedCouponStatus


class IssueCouponRequest(BaseModel):
    coupon_id: UUID
    email: EmailStr | None = None


class ValidateCouponRequest(BaseModel):
    code: str = Field(min_length=1, max_length=64)


class RedeemCouponRequest(BaseModel):
    code: str = Field(min_length=1, max_length=64)


class IssuedCouponUpdate(BaseModel):
    status: IssuedCouponStatus | None = None
    redemptions_count: int | None = None
    metadata: dict[str, Any] | None = None


class AdjustRedemptionsRequest(BaseModel):
    delta: int


class EngagementRequest(BaseModel):
    flag: Literal["wallet_added", "downloaded", "code_copied"]


class IssuedCouponResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    coupon_id: UUID
    code: str
    email: str | None = None
    issued_to: str | None = None
    status: str
    redemptions_count: int
    max_redemptions: int
    issued_at: datetime
    expires_at: datetime | None = None
    redeemed_at: datetime | None = None
    revoked_at: datetime | None = None
    metadata: dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("metadata_", "metadata")
    )


class IssuedCouponListItem(IssuedCouponResponse):
    coupon_title: str | None = None


class IssueCouponResponse(BaseModel):
    issued_coupon: IssuedCouponResponse | None = None
    error: str | None = None


class ValidateCouponResponse(BaseModel):
    valid: bool
    issued_coupon: IssuedCouponResponse | None = None
    error: str | None = None
    message: str | None = None


class CheckExistingCouponResponse(BaseModel):
    exists: bool
    issued_coupon: IssuedCouponResponse | None = None
    error: str | None = None


class SurveyCompletionResponse(BaseModel):
    completed: bool
    error: str | None = None


class CouponRedeemedResponse(BaseModel):
    redeemed: bool
    error: str | None = None


class CouponStatusResponse(BaseModel):
    status: Literal["redeemed", "revoked", "expired", "cancelled"] | None = None
    error: str | None = None


class IssuedCouponPageResponse(BaseModel):
    issued_coupons: list[IssuedCouponListItem] | None = None
    total_count: int = 0
    total_pages: int = 0
    error: str | None = None


class MutationResponse(BaseModel):
    success: bool
    error: str | None = None


class IssuedCouponMutationResponse(BaseModel):
    success: bool
    issued_coupon: IssuedCouponResponse | None = None
    error: str | None = None
