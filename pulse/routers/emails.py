"""Public email opt-in endpoints."""

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from pulse.core.database import get_db
from pulse.core.rate_limiter import get_client_identifier
from pulse.routers.results import apply_result_status
from pulse.schemas.email_opt_in import (
    EmailSubmitRequest,
    EmailSubmitResponse,
    EmailVerifyResponse,
)
from pulse.services.email_service import EmailService

router = APIRouter()


@router.post(
    "/emails",
    response_model=EmailSubmitResponse,
    summary="Submit email",
    responses={
        404: {"description": "Tenant not found"},
        422: {"description": "Invalid email address"},
        429: {"description": "Too many requests"},
    },
)
async def submit_email(
    slug: str,
    data: EmailSubmitRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> EmailSubmitResponse:
    result = EmailService(db).submit_email(
        slug, data.email, client=get_client_identifier(data.email.strip(), request)
    )
    apply_result_status(response, result)
    return EmailSubmitResponse(success=result.success, message=result.message, error=result.error)


@router.post(
    "/emails/opt_in",
    response_model=EmailSubmitResponse,
    summary="Submit email opt-in after social login",
    responses={
        404: {"description": "Tenant not found"},
        429: {"description": "Too many requests"},
    },
)
async def submit_email_opt_in(
    slug: str,
    data: EmailSubmitRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> EmailSubmitResponse:
    result = EmailService(db).submit_email_opt_in(
        slug, data.email, client=get_client_identifier(data.email.strip(), request)
    )
    apply_result_status(response, result)
    return EmailSubmitResponse(success=result.success, message=result.message, error=result.error)


@router.get(
    "/emails/verify",
    response_model=EmailVerifyResponse,
    summary="Verify email opt-in",
    responses={404: {"description": "Tenant not found"}},
)
async def verify_email_opt_in(
    slug: str,
    response: Response,
    email: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> EmailVerifyResponse:
    """Whether ``email`` already opted in, so a returning visitor can skip the survey."""
    result = EmailService(db).verify_email_opt_in(slug, email)
    apply_result_status(response, result)
    return EmailVerifyResponse(valid=result.valid, error=result.error)
