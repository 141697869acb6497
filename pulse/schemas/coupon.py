"""Coupon definition schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CouponCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    discount: str | None = Field(default=None, max_length=255)
    image_url: str | None = Field(default=None, max_length=2048)
    expires_at: datetime | None = None
    max_redemptions: int | None = Field(default=None, ge=1)
    active: bool = True


class CouponUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    discount: str | None = Field(default=None, max_length=255)
    image_url: str | None = Field(default=None, max_length=2048)
    expires_at: datetime | None = None
    max_redemptions: int | None = Field(default=None, ge=1)
    active: bool | None = None


class CouponResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    title: str
    description: str | None = None
    discount: str | None = None
    image_url: str | None = None
    expires_at: datetime | None = None
    max_redemptions: int
    active: bool
    created_at: datetime
    updated_at: datetime
