"""Public survey endpoints."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.orm import Session

from pulse.core.database import get_db
from pulse.core.errors import HTTP_STATUS_BY_KIND
from pulse.core.rate_limiter import get_client_identifier
from pulse.routers.results import apply_result_status
from pulse.schemas.survey import SubmissionResponse, SurveyQuestionsResponse, SurveySubmission
from pulse.services.survey_service import SurveyService

router = APIRouter()


@router.get(
    "/survey",
    response_model=SurveyQuestionsResponse,
    summary="Get survey",
    responses={404: {"description": "Tenant not found"}},
)
async def get_survey(
    slug: str,
    coupon_id: UUID | None = Query(default=None),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Active survey questions of the tenant in display order."""
    result = SurveyService(db).get_survey(slug, coupon_id)
    if result.error_kind is not None:
        raise HTTPException(status_code=HTTP_STATUS_BY_KIND[result.error_kind], detail=result.error)
    return {
        "tenant_id": result.tenant_id,
        "coupon_id": result.coupon_id,
        "questions": result.questions,
    }


@router.post(
    "/survey/responses",
    response_model=SubmissionResponse,
    status_code=201,
    summary="Submit survey answers",
    responses={
        404: {"description": "Tenant or question not found"},
        429: {"description": "Too many survey submissions"},
    },
)
async def submit_survey_answers(
    slug: str,
    data: SurveySubmission,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> SubmissionResponse:
    result = SurveyService(db).submit_survey_answers(
        slug, data, client=get_client_identifier(data.email, request)
    )
    apply_result_status(response, result)
    return SubmissionResponse(success=result.success, error=result.error)
