from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint

from pulse.core.database import Base
from pulse.models.shared import UUIDType, generate_uuid, utc_now


class EmailOptIn(Base):
    __tablename__ = "email_opt_ins"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_email_opt_ins_tenant_email"),)

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    tenant_id = Column(
        UUIDType,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    email = Column(String(255), nullable=False)
    consent_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
