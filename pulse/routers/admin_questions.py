"""Admin survey question endpoints."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from pulse.core.auth import require_manager
from pulse.core.database import get_db
from pulse.core.errors import HTTP_STATUS_BY_KIND
from pulse.core.tenant import TenantContext
from pulse.models.survey_question import SurveyQuestion
from pulse.repositories.question_repository import QuestionRepository
from pulse.routers.results import apply_result_status
from pulse.schemas.question import (
    QuestionCreate,
    QuestionMutationResponse,
    QuestionResponse,
    QuestionResultsResponse,
    QuestionUpdate,
    ReorderRequest,
)
from pulse.services.question_service import QuestionResult, QuestionService

router = APIRouter()


def _body(result: QuestionResult) -> dict[str, Any]:
    return {"success": result.success, "question": result.question, "error": result.error}


@router.get(
    "/questions",
    response_model=list[QuestionResponse],
    summary="List questions",
    responses={401: {"description": "Unauthorized"}, 403: {"description": "Forbidden"}},
)
async def list_questions(
    response: Response,
    ctx: TenantContext = Depends(require_manager),
) -> list[SurveyQuestion]:
    """List every question, active or not, in display order."""
    questions = QuestionRepository(ctx).get_all()
    response.headers["X-Total-Count"] = str(len(questions))
    return questions


@router.get(
    "/questions/{question_id}",
    response_model=QuestionResponse,
    summary="Get question",
    responses={404: {"description": "Question not found"}},
)
async def get_question(
    question_id: UUID,
    ctx: TenantContext = Depends(require_manager),
) -> SurveyQuestion:
    question = QuestionRepository(ctx).get_by_id(question_id)
    if not question:
        raise HTTPException(status_code=404, detail="Question not found")
    return question


@router.post(
    "/questions",
    response_model=QuestionMutationResponse,
    status_code=201,
    summary="Create question",
    responses={422: {"description": "Validation error"}},
)
async def create_question(
    data: QuestionCreate,
    response: Response,
    ctx: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Append a question at the end of the survey."""
    result = QuestionService(db).create_question(ctx.slug, data)
    apply_result_status(response, result)
    return _body(result)


@router.put(
    "/questions/{question_id}",
    response_model=QuestionMutationResponse,
    summary="Update question",
    responses={404: {"description": "Question not found"}},
)
async def update_question(
    question_id: UUID,
    data: QuestionUpdate,
    response: Response,
    ctx: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    result = QuestionService(db).update_question(ctx.slug, question_id, data)
    apply_result_status(response, result)
    return _body(result)


@router.delete(
    "/questions/{question_id}",
    response_model=QuestionMutationResponse,
    summary="Delete question",
    responses={404: {"description": "Question not found"}},
)
async def delete_question(
    question_id: UUID,
    response: Response,
    ctx: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Delete a question; the ones after it move up to close the gap."""
    result = QuestionService(db).delete_question(ctx.slug, question_id)
    apply_result_status(response, result)
    return _body(result)


@router.post(
    "/questions/{question_id}/reorder",
    response_model=QuestionMutationResponse,
    summary="Move question up or down",
    responses={
        400: {"description": "Already at the top or bottom"},
        404: {"description": "Question not found"},
    },
)
async def reorder_question(
    question_id: UUID,
    data: ReorderRequest,
    response: Response,
    ctx: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    result = QuestionService(db).reorder_question(ctx.slug, question_id, data.direction)
    apply_result_status(response, result)
    return _body(result)


@router.post(
    "/questions/{question_id}/toggle",
    response_model=QuestionMutationResponse,
    summary="Toggle question active status",
    responses={404: {"description": "Question not found"}},
)
async def toggle_question(
    question_id: UUID,
    response: Response,
    ctx: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    result = QuestionService(db).toggle_question_status(ctx.slug, question_id)
    apply_result_status(response, result)
    return _body(result)


@router.get(
    "/questions/{question_id}/results",
    response_model=QuestionResultsResponse,
    summary="Get question results",
    responses={404: {"description": "Question not found"}},
)
async def get_question_results(
    question_id: UUID,
    ctx: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Aggregated answers for one question."""
    result = QuestionService(db).get_question_results(ctx.slug, question_id)
    if result.error_kind is not None:
        raise HTTPException(status_code=HTTP_STATUS_BY_KIND[result.error_kind], detail=result.error)
    question = result.question
    return {
        "question_id": question.id,  # type: ignore[union-attr]
        "question": question.question,  # type: ignore[union-attr]
        "type": question.type,  # type: ignore[union-attr]
        "total_responses": result.total_responses,
        "choice_counts": result.choice_counts,
        "numeric_stats": result.numeric_stats,
        "boolean_counts": result.boolean_counts,
        "text_responses": result.text_responses,
    }
