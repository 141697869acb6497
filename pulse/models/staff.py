"""Staff model for users with access to a tenant's admin API."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, func

from pulse.core.database import Base
from pulse.models.shared import UUIDType, generate_uuid


class StaffRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    STAFF = "staff"


# Roles allowed to change tenant configuration (coupons, questions, edits)
MANAGER_ROLES = (StaffRole.OWNER, StaffRole.ADMIN)


class StaffMember(Base):
    __tablename__ = "staff_members"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_staff_members_tenant_email"),)

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    tenant_id = Column(
        UUIDType,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    email = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=StaffRole.STAFF.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
