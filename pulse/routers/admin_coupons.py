"""Admin coupon definition endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from pulse.core.auth import require_manager
from pulse.core.tenant import TenantContext
from pulse.models.coupon import Coupon
from pulse.repositories.coupon_repository import CouponRepository
from pulse.schemas.coupon import CouponCreate, CouponResponse, CouponUpdate

router = APIRouter()


@router.post(
    "/coupons",
    response_model=CouponResponse,
    status_code=201,
    summary="Create coupon",
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        422: {"description": "Validation error"},
    },
)
async def create_coupon(
    data: CouponCreate,
    ctx: TenantContext = Depends(require_manager),
) -> Coupon:
    """Create a new coupon definition."""
    return CouponRepository(ctx).create(data)


@router.get(
    "/coupons",
    response_model=list[CouponResponse],
    summary="List coupons",
    responses={401: {"description": "Unauthorized"}, 403: {"description": "Forbidden"}},
)
async def list_coupons(
    response: Response,
    active_only: bool = Query(default=False),
    ctx: TenantContext = Depends(require_manager),
) -> list[Coupon]:
    """List all coupon definitions, including inactive and expired ones."""
    coupons = CouponRepository(ctx).get_all(active_only=active_only)
    response.headers["X-Total-Count"] = str(len(coupons))
    return coupons


@router.get(
    "/coupons/{coupon_id}",
    response_model=CouponResponse,
    summary="Get coupon",
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Coupon not found"},
    },
)
async def get_coupon(
    coupon_id: UUID,
    ctx: TenantContext = Depends(require_manager),
) -> Coupon:
    coupon = CouponRepository(ctx).get_by_id(coupon_id)
    if not coupon:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return coupon


@router.put(
    "/coupons/{coupon_id}",
    response_model=CouponResponse,
    summary="Update coupon",
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Coupon not found"},
        422: {"description": "Validation error"},
    },
)
async def update_coupon(
    coupon_id: UUID,
    data: CouponUpdate,
    ctx: TenantContext = Depends(require_manager),
) -> Coupon:
    """Update the given fields of a coupon definition."""
    coupon = CouponRepository(ctx).update(coupon_id, data)
    if not coupon:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return coupon


@router.delete(
    "/coupons/{coupon_id}",
    status_code=204,
    summary="Delete coupon",
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Coupon not found"},
    },
)
async def delete_coupon(
    coupon_id: UUID,
    ctx: TenantContext = Depends(require_manager),
) -> None:
    """Delete a coupon definition and every code issued from it."""
    if not CouponRepository(ctx).delete(coupon_id):
        raise HTTPException(status_code=404, detail="Coupon not found")
