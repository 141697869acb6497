"""Tenant schemas."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict


class TenantResponse(BaseModel):
    """Public tenant data shown on landing pages."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    slug: str
    name: str
    logo_url: str | None = None
    website_url: str | None = None
    active: bool
