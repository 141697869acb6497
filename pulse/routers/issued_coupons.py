"""Public issued coupon endpoints used by the visitor flow."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from pulse.core.database import get_db
from pulse.core.rate_limiter import get_client_identifier
from pulse.routers.results import apply_result_status
from pulse.schemas.issued_coupon import (
    CheckExistingCouponResponse,
    CouponRedeemedResponse,
    CouponStatusResponse,
    EngagementRequest,
    IssueCouponRequest,
    IssueCouponResponse,
    MutationResponse,
    SurveyCompletionResponse,
    ValidateCouponRequest,
    ValidateCouponResponse,
)
from pulse.services.issued_coupon_service import IssuedCouponService

router = APIRouter()


@router.post(
    "/issued_coupons",
    response_model=IssueCouponResponse,
    summary="Issue coupon",
    responses={
        404: {"description": "Tenant or coupon not found"},
        409: {"description": "Could not generate a unique code"},
        429: {"description": "Too many coupon requests"},
    },
)
async def issue_coupon(
    slug: str,
    data: IssueCouponRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Issue a coupon code, or return the one already issued to this email."""
    result = IssuedCouponService(db).issue_coupon(
        slug,
        data.coupon_id,
        email=data.email,
        client=get_client_identifier(data.email, request),
    )
    apply_result_status(response, result)
    return {"issued_coupon": result.issued_coupon, "error": result.error}


@router.get(
    "/issued_coupons/existing",
    response_model=CheckExistingCouponResponse,
    summary="Check existing coupon",
    responses={
        404: {"description": "Tenant not found"},
        429: {"description": "Too many coupon check requests"},
    },
)
async def check_existing_coupon(
    slug: str,
    request: Request,
    response: Response,
    coupon_id: UUID = Query(...),
    email: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Return the visitor's most recent coupon for ``coupon_id``, redeemed or not."""
    result = IssuedCouponService(db).check_existing_coupon(
        slug, coupon_id, email, client=get_client_identifier(email, request)
    )
    apply_result_status(response, result)
    return {"exists": result.exists, "issued_coupon": result.issued_coupon, "error": result.error}


@router.get(
    "/issued_coupons/status",
    response_model=CouponStatusResponse,
    summary="Get coupon status",
    responses={404: {"description": "Tenant not found"}},
)
async def get_coupon_status(
    slug: str,
    response: Response,
    coupon_id: UUID = Query(...),
    email: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> CouponStatusResponse:
    result = IssuedCouponService(db).get_coupon_status(slug, coupon_id, email)
    apply_result_status(response, result)
    return CouponStatusResponse(status=result.status, error=result.error)


@router.get(
    "/issued_coupons/redeemed",
    response_model=CouponRedeemedResponse,
    summary="Check whether the visitor's coupon is used up",
    responses={404: {"description": "Tenant not found"}},
)
async def is_coupon_already_redeemed(
    slug: str,
    response: Response,
    coupon_id: UUID = Query(...),
    email: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> CouponRedeemedResponse:
    result = IssuedCouponService(db).is_coupon_already_redeemed(slug, coupon_id, email)
    apply_result_status(response, result)
    return CouponRedeemedResponse(redeemed=result.redeemed, error=result.error)


@router.post(
    "/issued_coupons/validate",
    response_model=ValidateCouponResponse,
    summary="Validate coupon code",
    responses={
        400: {"description": "Coupon cannot be used"},
        404: {"description": "Tenant or code not found"},
    },
)
async def validate_coupon_code(
    slug: str,
    data: ValidateCouponRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Check a code without redeeming it."""
    result = IssuedCouponService(db).validate_coupon_code(slug, data.code, redeem=False)
    apply_result_status(response, result)
    return {
        "valid": result.valid,
        "issued_coupon": result.issued_coupon,
        "error": result.error,
        "message": result.message,
    }


@router.post(
    "/issued_coupons/{issued_coupon_id}/engagement",
    response_model=MutationResponse,
    summary="Record coupon engagement",
    responses={404: {"description": "Tenant or issued coupon not found"}},
)
async def record_engagement(
    slug: str,
    issued_coupon_id: UUID,
    data: EngagementRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> MutationResponse:
    """Record that the visitor copied, downloaded or saved their coupon."""
    result = IssuedCouponService(db).record_engagement(slug, issued_coupon_id, data.flag)
    apply_result_status(response, result)
    return MutationResponse(success=result.success, error=result.error)


@router.get(
    "/survey_completion",
    response_model=SurveyCompletionResponse,
    summary="Check survey completion",
    responses={404: {"description": "Tenant not found"}},
)
async def has_completed_survey(
    slug: str,
    response: Response,
    email: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> SurveyCompletionResponse:
    """A visitor who already received a coupon from this tenant skips the survey."""
    result = IssuedCouponService(db).has_completed_survey_for_tenant(slug, email)
    apply_result_status(response, result)
    return SurveyCompletionResponse(completed=result.completed, error=result.error)
