"""Public tenant landing endpoints: tenant details and its coupon catalog."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pulse.core.auth import get_tenant_context
from pulse.core.database import get_db
from pulse.core.errors import TenantNotFoundError
from pulse.core.tenant import TenantContext, TenantResolver
from pulse.models.coupon import Coupon
from pulse.models.shared import as_utc, utc_now
from pulse.models.tenant import Tenant
from pulse.repositories.coupon_repository import CouponRepository
from pulse.schemas.coupon import CouponResponse
from pulse.schemas.tenant import TenantResponse

router = APIRouter()


@router.get(
    "/",
    response_model=TenantResponse,
    summary="Get tenant",
    responses={404: {"description": "Tenant not found"}},
)
async def get_tenant(slug: str, db: Session = Depends(get_db)) -> Tenant:
    """Get a tenant's public details.

    Deactivated tenants are returned too, with ``active`` false, so the landing
    page can explain that the campaign is closed.
    """
    try:
        return TenantResolver(db).resolve(slug, include_inactive=True)
    except TenantNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from None


@router.get(
    "/coupons",
    response_model=list[CouponResponse],
    summary="List available coupons",
    responses={404: {"description": "Tenant not found"}},
)
async def list_coupons(ctx: TenantContext = Depends(get_tenant_context)) -> list[Coupon]:
    """List the tenant's active coupons that have not expired."""
    return CouponRepository(ctx).get_all(active_only=True, now=utc_now())


@router.get(
    "/coupons/{coupon_id}",
    response_model=CouponResponse,
    summary="Get coupon",
    responses={404: {"description": "Tenant or coupon not found"}},
)
async def get_coupon(
    coupon_id: UUID,
    ctx: TenantContext = Depends(get_tenant_context),
) -> Coupon:
    coupon = CouponRepository(ctx).get_by_id(coupon_id)
    if not coupon or not coupon.active:
        raise HTTPException(status_code=404, detail="Coupon not found")
    expires_at = as_utc(coupon.expires_at)  # type: ignore[arg-type]
    if expires_at is not None and expires_at < utc_now():
        raise HTTPException(status_code=404, detail="Coupon not found")
    return coupon
