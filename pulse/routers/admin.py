"""Admin endpoints for the tenant dashboard, mailing list and staff access."""

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from pulse.core.auth import require_manager
from pulse.core.database import get_db
from pulse.core.errors import HTTP_STATUS_BY_KIND
from pulse.core.tenant import TenantContext
from pulse.models.email_opt_in import EmailOptIn
from pulse.models.staff import StaffMember
from pulse.repositories.api_key_repository import ApiKeyRepository
from pulse.repositories.staff_repository import StaffRepository
from pulse.schemas.dashboard import DashboardMetricsResponse
from pulse.schemas.email_opt_in import EmailOptInResponse
from pulse.schemas.staff import ApiKeyCreate, ApiKeyCreateResponse, StaffCreate, StaffResponse
from pulse.services.dashboard_service import DashboardService
from pulse.services.email_service import EmailService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "/dashboard",
    response_model=DashboardMetricsResponse,
    summary="Get dashboard metrics",
    responses={401: {"description": "Unauthorized"}, 403: {"description": "Forbidden"}},
)
async def get_dashboard_metrics(
    ctx: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    result = DashboardService(db).get_dashboard_metrics(ctx.slug)
    if result.error_kind is not None:
        raise HTTPException(status_code=HTTP_STATUS_BY_KIND[result.error_kind], detail=result.error)
    top = result.top_coupon
    return {
        "total_responses": result.total_responses,
        "unique_sessions": result.unique_sessions,
        "issued_coupons": result.issued_coupons,
        "redeemed_coupons": result.redeemed_coupons,
        "redemption_rate": result.redemption_rate,
        "email_opt_ins": result.email_opt_ins,
        "happiness_score": result.happiness_score,
        "sentiment_distribution": result.sentiment_distribution,
        "engagement": result.engagement,
        "top_coupon": (
            {"coupon_id": top.coupon_id, "title": top.title, "issued_count": top.issued_count}
            if top
            else None
        ),
    }


@router.get(
    "/emails",
    response_model=list[EmailOptInResponse],
    summary="List email opt-ins",
    responses={401: {"description": "Unauthorized"}, 403: {"description": "Forbidden"}},
)
async def list_email_opt_ins(
    response: Response,
    ctx: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> list[EmailOptIn]:
    result = EmailService(db).list_email_opt_ins(ctx.slug)
    if result.error_kind is not None:
        raise HTTPException(status_code=HTTP_STATUS_BY_KIND[result.error_kind], detail=result.error)
    opt_ins = result.opt_ins or []
    response.headers["X-Total-Count"] = str(len(opt_ins))
    return opt_ins


@router.get(
    "/staff",
    response_model=list[StaffResponse],
    summary="List staff members",
    responses={401: {"description": "Unauthorized"}, 403: {"description": "Forbidden"}},
)
async def list_staff(ctx: TenantContext = Depends(require_manager)) -> list[StaffMember]:
    return StaffRepository(ctx).get_all()


@router.post(
    "/staff",
    response_model=StaffResponse,
    status_code=201,
    summary="Add staff member",
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        409: {"description": "Staff member already exists"},
    },
)
async def create_staff(
    data: StaffCreate,
    ctx: TenantContext = Depends(require_manager),
) -> StaffMember:
    repo = StaffRepository(ctx)
    if repo.get_by_email(data.email):
        raise HTTPException(status_code=409, detail="Staff member already exists")
    member = repo.create(data.email, role=data.role)
    logger.info("Added %s staff member %s to tenant %s", member.role, member.id, ctx.tenant_id)
    return member


@router.post(
    "/api_keys",
    response_model=ApiKeyCreateResponse,
    status_code=201,
    summary="Create API key",
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Staff member not found"},
    },
)
async def create_api_key(
    data: ApiKeyCreate,
    ctx: TenantContext = Depends(require_manager),
) -> dict[str, Any]:
    """Create an API key for a staff member. The raw key is only returned here."""
    staff = StaffRepository(ctx).get_by_email(data.staff_email)
    if not staff:
        raise HTTPException(status_code=404, detail="Staff member not found")

    api_key, raw_key = ApiKeyRepository(ctx.db).create(
        ctx.tenant_id,
        staff.id,  # type: ignore[arg-type]
        name=data.name,
        expires_at=data.expires_at,
    )
    return {
        "id": api_key.id,
        "tenant_id": api_key.tenant_id,
        "staff_id": api_key.staff_id,
        "key_prefix": api_key.key_prefix,
        "name": api_key.name,
        "status": api_key.status,
        "expires_at": api_key.expires_at,
        "last_used_at": api_key.last_used_at,
        "created_at": api_key.created_at,
        "raw_key": raw_key,
    }


@router.delete(
    "/api_keys/{api_key_id}",
    status_code=204,
    summary="Revoke API key",
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "API key not found"},
    },
)
async def revoke_api_key(
    api_key_id: UUID,
    ctx: TenantContext = Depends(require_manager),
) -> None:
    """Revoke an API key of this tenant. Revoked keys stop authenticating immediately."""
    api_key = ApiKeyRepository(ctx.db).revoke(api_key_id, ctx.tenant_id)
    if not api_key:
        raise HTTPException(status_code=404, detail="API key not found")
    logger.info("Revoked API key %s for tenant %s", api_key_id, ctx.tenant_id)
