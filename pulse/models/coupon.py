"""Coupon model: a tenant-owned promotional offer definition."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, func

from pulse.core.database import Base
from pulse.models.shared import UUIDType, generate_uuid


class Coupon(Base):
    """Coupon definition that issued codes are minted from."""

    __tablename__ = "coupons"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    tenant_id = Column(
        UUIDType,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    discount = Column(String(255), nullable=True)
    image_url = Column(String(2048), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    max_redemptions = Column(Integer, nullable=False, default=1)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
