"""IssuedCoupon model: a uniquely coded instance of a coupon claimed by a visitor."""

from enum import Enum
from typing import assert_never

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)

from pulse.core.database import Base
from pulse.models.shared import UUIDType, generate_uuid, utc_now


class IssuedCouponStatus(str, Enum):
    ISSUED = "issued"
    REDEEMED = "redeemed"
    REVOKED = "revoked"
    EXPIRED = "expired"
    # Only ever written by admin edits; validation treats it as terminal.
    CANCELLED = "cancelled"


def is_terminal(status: IssuedCouponStatus) -> bool:
    """Whether no validate/redeem call may move a coupon out of ``status``."""
    match status:
        case IssuedCouponStatus.ISSUED | IssuedCouponStatus.REDEEMED:
            return False
        case (
            IssuedCouponStatus.REVOKED
            | IssuedCouponStatus.EXPIRED
            | IssuedCouponStatus.CANCELLED
        ):
            return True
        case _:
            assert_never(status)


class IssuedCoupon(Base):
    """IssuedCoupon model tracking the redemption lifecycle of one code."""

    __tablename__ = "issued_coupons"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "coupon_id", "email", name="uq_issued_coupons_tenant_coupon_email"
        ),
        Index("ix_issued_coupons_tenant_coupon_email", "tenant_id", "coupon_id", "email"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    tenant_id = Column(
        UUIDType,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    coupon_id = Column(
        UUIDType,
        ForeignKey("coupons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code = Column(String(64), unique=True, index=True, nullable=False)
    email = Column(String(255), nullable=True)
    issued_to = Column(String(255), nullable=True)

    status = Column(String(20), nullable=False, default=IssuedCouponStatus.ISSUED.value)
    redemptions_count = Column(Integer, nullable=False, default=0)
    max_redemptions = Column(Integer, nullable=False, default=1)

    issued_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    redeemed_at = Column(DateTime(timezone=True), nullable=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    metadata_ = Column("metadata", JSON, nullable=False, default=dict)

    @property
    def status_enum(self) -> IssuedCouponStatus:
        return IssuedCouponStatus(self.status)

    @property
    def is_fully_redeemed(self) -> bool:
        return (
            self.redemptions_count >= self.max_redemptions  # type: ignore[operator]
            or self.status == IssuedCouponStatus.REDEEMED.value
        )
