"""Email collection schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class EmailSubmitRequest(BaseModel):
    # Plain string: malformed addresses are reported in the result body.
    email: str = Field(max_length=255)


class EmailSubmitResponse(BaseModel):
    success: bool
    message: str | None = None
    error: str | None = None


class EmailVerifyResponse(BaseModel):
    valid: bool
    error: str | None = None


class EmailOptInResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    consent_at: datetime
