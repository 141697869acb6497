"""Staff member and API key schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from pulse.models.staff import StaffRole


class StaffResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    email: str
    role: StaffRole
    created_at: datetime


class StaffCreate(BaseModel):
    email: EmailStr
    role: StaffRole = StaffRole.STAFF


class ApiKeyCreate(BaseModel):
    staff_email: EmailStr
    name: str | None = Field(default=None, max_length=255)
    expires_at: datetime | None = None


class ApiKeyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    staff_id: UUID
    key_prefix: str
    name: str | None = None
    status: str
    expires_at: datetime | None = None
    last_used_at: datetime | None = None
    created_at: datetime


class ApiKeyCreateResponse(ApiKeyResponse):
    """Returned once at creation: ``raw_key`` is never stored."""

    raw_key: str
