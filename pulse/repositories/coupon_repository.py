"""Coupon definition repository for data access."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import or_

from pulse.core.config import settings
from pulse.core.tenant import TenantContext
from pulse.models.coupon import Coupon
from pulse.models.issued_coupon import IssuedCoupon
from pulse.schemas.coupon import CouponCreate, CouponUpdate


class CouponRepository:
    """Repository for Coupon definitions of one tenant."""

    def __init__(self, ctx: TenantContext):
        self.ctx = ctx

    def get_all(self, active_only: bool = False, now: datetime | None = None) -> list[Coupon]:
        """Get coupon definitions, newest first.

        With ``active_only`` the list is restricted to active definitions that
        have not expired as of ``now``.
        """
        query = self.ctx.query(Coupon)
        if active_only:
            query = query.filter(Coupon.active.is_(True))
            if now is not None:
                query = query.filter(or_(Coupon.expires_at.is_(None), Coupon.expires_at > now))
        return query.order_by(Coupon.created_at.desc()).all()

    def get_by_id(self, coupon_id: UUID) -> Coupon | None:
        return self.ctx.query(Coupon).filter(Coupon.id == coupon_id).first()

    def create(self, data: CouponCreate) -> Coupon:
        coupon = Coupon(
            title=data.title,
            description=data.description,
            discount=data.discount,
            image_url=data.image_url,
            expires_at=data.expires_at,
            max_redemptions=data.max_redemptions or settings.DEFAULT_MAX_REDEMPTIONS,
            active=data.active,
        )
        self.ctx.add(coupon)
        self.ctx.db.commit()
        self.ctx.db.refresh(coupon)
        return coupon

    def update(self, coupon_id: UUID, data: CouponUpdate) -> Coupon | None:
        coupon = self.get_by_id(coupon_id)
        if not coupon:
            return None

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(coupon, key, value)

        self.ctx.db.commit()
        self.ctx.db.refresh(coupon)
        return coupon

    def delete(self, coupon_id: UUID) -> bool:
        coupon = self.get_by_id(coupon_id)
        if not coupon:
            return False
        self.ctx.query(IssuedCoupon).filter(IssuedCoupon.coupon_id == coupon_id).delete(
            synchronize_session=False
        )
        self.ctx.db.delete(coupon)
        self.ctx.db.commit()
        return True
