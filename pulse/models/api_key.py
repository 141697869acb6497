from sqlalchemy import Column, DateTime, ForeignKey, String, func

from pulse.core.database import Base
from pulse.models.shared import UUIDType, generate_uuid


class ApiKey(Base):
    __tablename__ = "api_keys"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    tenant_id = Column(
        UUIDType,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    staff_id = Column(
        UUIDType,
        ForeignKey("staff_members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    key_hash = Column(String(255), nullable=False, unique=True, index=True)
    key_prefix = Column(String(12), nullable=False)
    name = Column(String(255), nullable=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(50), nullable=False, default="active")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
