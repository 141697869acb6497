"""Tenant model: an isolated customer organization."""

from sqlalchemy import Boolean, Column, DateTime, String, func

from pulse.core.database import Base
from pulse.models.shared import UUIDType, generate_uuid


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    logo_url = Column(String(2048), nullable=True)
    website_url = Column(String(2048), nullable=True)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
