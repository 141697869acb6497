"""Admin issued coupon endpoints: listing, edits and in-store redemption."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from pulse.core.auth import require_manager, require_staff
from pulse.core.database import get_db
from pulse.core.errors import HTTP_STATUS_BY_KIND
from pulse.core.tenant import TenantContext
from pulse.routers.results import apply_result_status
from pulse.schemas.issued_coupon import (
    AdjustRedemptionsRequest,
    IssuedCouponListItem,
    IssuedCouponMutationResponse,
    IssuedCouponPageResponse,
    IssuedCouponUpdate,
    RedeemCouponRequest,
    ValidateCouponRequest,
    ValidateCouponResponse,
)
from pulse.services.issued_coupon_service import (
    IssuedCouponMutationResult,
    IssuedCouponService,
    ValidateCouponResult,
)

router = APIRouter()


def _mutation_body(result: IssuedCouponMutationResult) -> dict[str, Any]:
    return {
        "success": result.success,
        "issued_coupon": result.issued_coupon,
        "error": result.error,
    }


def _validation_body(result: ValidateCouponResult) -> dict[str, Any]:
    return {
        "valid": result.valid,
        "issued_coupon": result.issued_coupon,
        "error": result.error,
        "message": result.message,
    }


@router.get(
    "/issued_coupons",
    response_model=IssuedCouponPageResponse,
    summary="List issued coupons",
    responses={401: {"description": "Unauthorized"}, 403: {"description": "Forbidden"}},
)
async def list_issued_coupons(
    response: Response,
    page: int = Query(default=1, ge=1),
    items_per_page: int = Query(default=10, ge=1, le=100),
    ctx: TenantContext = Depends(require_staff),
    db: Session = Depends(get_db),
) -> IssuedCouponPageResponse:
    """List issued coupons newest first, each with its coupon title."""
    result = IssuedCouponService(db).get_issued_coupons_paginated(ctx.slug, page, items_per_page)
    if result.error_kind is not None:
        raise HTTPException(status_code=HTTP_STATUS_BY_KIND[result.error_kind], detail=result.error)

    items = [
        IssuedCouponListItem.model_validate(row.issued_coupon, from_attributes=True).model_copy(
            update={"coupon_title": row.coupon_title}
        )
        for row in result.issued_coupons or []
    ]
    response.headers["X-Total-Count"] = str(result.total_count)
    return IssuedCouponPageResponse(
        issued_coupons=items,
        total_count=result.total_count,
        total_pages=result.total_pages,
    )


@router.patch(
    "/issued_coupons/{issued_coupon_id}",
    response_model=IssuedCouponMutationResponse,
    summary="Update issued coupon",
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden or update blocked"},
        422: {"description": "Redemptions count out of range"},
    },
)
async def update_issued_coupon(
    issued_coupon_id: UUID,
    data: IssuedCouponUpdate,
    response: Response,
    ctx: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Set status, redemption count or metadata exactly as given."""
    result = IssuedCouponService(db).update_issued_coupon(ctx.slug, issued_coupon_id, data)
    apply_result_status(response, result)
    return _mutation_body(result)


@router.post(
    "/issued_coupons/{issued_coupon_id}/adjust",
    response_model=IssuedCouponMutationResponse,
    summary="Adjust redemptions",
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden or update blocked"},
    },
)
async def adjust_redemptions(
    issued_coupon_id: UUID,
    data: AdjustRedemptionsRequest,
    response: Response,
    ctx: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Increment or decrement the redemption count, keeping status consistent."""
    result = IssuedCouponService(db).adjust_redemptions(ctx.slug, issued_coupon_id, data.delta)
    apply_result_status(response, result)
    return _mutation_body(result)


@router.post(
    "/issued_coupons/redeem",
    response_model=ValidateCouponResponse,
    summary="Redeem coupon code",
    responses={
        400: {"description": "Coupon cannot be redeemed"},
        401: {"description": "Unauthorized"},
        404: {"description": "Code not found"},
    },
)
async def redeem_coupon(
    data: RedeemCouponRequest,
    response: Response,
    ctx: TenantContext = Depends(require_staff),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Validate a code presented in store and consume one redemption."""
    result = IssuedCouponService(db).validate_coupon_code(ctx.slug, data.code, redeem=True)
    apply_result_status(response, result)
    return _validation_body(result)


@router.post(
    "/issued_coupons/validate",
    response_model=ValidateCouponResponse,
    summary="Validate coupon code",
    responses={
        400: {"description": "Coupon cannot be used"},
        401: {"description": "Unauthorized"},
        404: {"description": "Code not found"},
    },
)
async def validate_coupon(
    data: ValidateCouponRequest,
    response: Response,
    ctx: TenantContext = Depends(require_staff),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    result = IssuedCouponService(db).validate_coupon_code(ctx.slug, data.code, redeem=False)
    apply_result_status(response, result)
    return _validation_body(result)
