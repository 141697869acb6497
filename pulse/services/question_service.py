"""Survey question management: creation, edits, ordering and results."""

import logging
import statistics
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Literal
from uuid import UUID

from sqlalchemy.orm import Session

from pulse.core.errors import (
    AuthorizationBlockedError,
    BusinessRuleViolation,
    NotFoundError,
)
from pulse.core.tenant import TenantContext, TenantResolver
from pulse.models.survey_question import CHOICE_QUESTION_TYPES, QuestionType, SurveyQuestion
from pulse.repositories.question_repository import QuestionRepository
from pulse.repositories.survey_response_repository import SurveyResponseRepository
from pulse.schemas.question import QuestionCreate, QuestionUpdate
from pulse.services.results import ServiceResult, fail

logger = logging.getLogger(__name__)


@dataclass
class QuestionResult(ServiceResult):
    success: bool = False
    question: SurveyQuestion | None = None


@dataclass
class QuestionResults(ServiceResult):
    question: SurveyQuestion | None = None
    total_responses: int = 0
    choice_counts: dict[str, int] = field(default_factory=dict)
    numeric_stats: dict[str, Any] | None = None
    boolean_counts: dict[str, int] | None = None
    text_responses: list[str] = field(default_factory=list)


def _options_for(question_type: QuestionType | str, options: list[Any] | None) -> list[Any]:
    """Options are only kept for choice questions."""
    if QuestionType(question_type) in CHOICE_QUESTION_TYPES:
        return list(options or [])
    return []


def _sentinel_index() -> int:
    # Negative, so it never collides with a real position
    return -(int(time.time() * 1000) % 1000000) - 1


class QuestionService:
    def __init__(self, db: Session):
        self.db = db

    def _context(self, tenant_slug: str) -> TenantContext:
        return TenantResolver(self.db).context(tenant_slug, include_inactive=True)

    def create_question(self, tenant_slug: str, data: QuestionCreate) -> QuestionResult:
        """Append a question at the end of the tenant's survey."""
        try:
            ctx = self._context(tenant_slug)
            repo = QuestionRepository(ctx)
            question = repo.create(
                question=data.question,
                type=data.type.value,
                options=_options_for(data.type, data.options),
                order_index=repo.next_order_index(),
                is_active=data.is_active,
            )
            logger.info(
                "Created question %s at position %s for tenant %s",
                question.id,
                question.order_index,
                ctx.tenant_id,
            )
            return QuestionResult(success=True, question=question)
        except Exception as exc:
            return fail(QuestionResult(), exc, self.db)

    def update_question(
        self, tenant_slug: str, question_id: UUID, data: QuestionUpdate
    ) -> QuestionResult:
        try:
            ctx = self._context(tenant_slug)
            repo = QuestionRepository(ctx)
            current = repo.get_by_id(question_id)
            if current is None:
                raise NotFoundError("Question not found")

            values = data.model_dump(exclude_unset=True)
            if values.get("type") is not None:
                values["type"] = values["type"].value
            if "type" in values or "options" in values:
                question_type = values.get("type") or current.type
                options = values["options"] if "options" in values else current.options
                values["options"] = _options_for(question_type, options)  # type: ignore[arg-type]
            values = {key: value for key, value in values.items() if value is not None}

            if values and repo.update_fields(question_id, values) == 0:
                raise AuthorizationBlockedError("Update blocked - no rows were updated")

            self.db.refresh(current)
            return QuestionResult(success=True, question=current)
        except Exception as exc:
            return fail(QuestionResult(), exc, self.db)

    def toggle_question_status(self, tenant_slug: str, question_id: UUID) -> QuestionResult:
        try:
            ctx = self._context(tenant_slug)
            repo = QuestionRepository(ctx)
            current = repo.get_by_id(question_id)
            if current is None:
                raise NotFoundError("Question not found")

            repo.update_fields(question_id, {"is_active": not current.is_active})
            self.db.refresh(current)
            return QuestionResult(success=True, question=current)
        except Exception as exc:
            return fail(QuestionResult(), exc, self.db)

    def delete_question(self, tenant_slug: str, question_id: UUID) -> QuestionResult:
        """Delete a question and shift the ones after it up by one."""
        try:
            ctx = self._context(tenant_slug)
            repo = QuestionRepository(ctx)
            current = repo.get_by_id(question_id)
            if current is None:
                raise NotFoundError("Question not found")

            deleted_index: int = current.order_index  # type: ignore[assignment]
            repo.delete(question_id)
            logger.info("Deleted question %s for tenant %s", question_id, ctx.tenant_id)

            self._close_gap(repo, ctx, deleted_index)
            return QuestionResult(success=True)
        except Exception as exc:
            return fail(QuestionResult(), exc, self.db)

    def _close_gap(self, repo: QuestionRepository, ctx: TenantContext, deleted_index: int) -> None:
        # Gap closing is best effort; the delete itself already succeeded
        try:
            following = [(q.id, q.order_index) for q in repo.get_after(deleted_index)]
        except Exception:
            self.db.rollback()
            logger.warning(
                "Failed to fetch questions for reordering in tenant %s",
                ctx.tenant_id,
                exc_info=True,
            )
            return

        for question_id, order_index in following:
            try:
                repo.set_order_index(question_id, order_index - 1)  # type: ignore[arg-type,operator]
            except Exception:
                self.db.rollback()
                logger.warning(
                    "Failed to reorder question %s in tenant %s",
                    question_id,
                    ctx.tenant_id,
                    exc_info=True,
                )

    def reorder_question(
        self, tenant_slug: str, question_id: UUID, direction: Literal["up", "down"]
    ) -> QuestionResult:
        """Swap a question with its neighbour above or below.

        The swap runs in three committed steps through a negative sentinel
        position so the (tenant, order_index) uniqueness holds after each one.
        If a later step fails the earlier ones are undone by hand.
        """
        try:
            ctx = self._context(tenant_slug)
            repo = QuestionRepository(ctx)
            current = repo.get_by_id(question_id)
            if current is None:
                raise NotFoundError("Question not found")

            current_index: int = current.order_index  # type: ignore[assignment]
            new_index = current_index - 1 if direction == "up" else current_index + 1
            boundary = "top" if direction == "up" else "bottom"
            if new_index < 0:
                raise BusinessRuleViolation(f"Cannot move {direction} - already at {boundary}")

            target = repo.get_by_order_index(new_index)
            if target is None:
                raise BusinessRuleViolation(f"Cannot move {direction} - already at {boundary}")
            target_id: UUID = target.id  # type: ignore[assignment]

            self._swap(repo, question_id, target_id, current_index, new_index)
            logger.info(
                "Moved question %s %s (%s -> %s) for tenant %s",
                question_id,
                direction,
                current_index,
                new_index,
                ctx.tenant_id,
            )
            self.db.refresh(current)
            return QuestionResult(success=True, question=current)
        except Exception as exc:
            return fail(QuestionResult(), exc, self.db)

    def _swap(
        self,
        repo: QuestionRepository,
        question_id: UUID,
        target_id: UUID,
        current_index: int,
        new_index: int,
    ) -> None:
        repo.set_order_index(question_id, _sentinel_index())

        try:
            repo.set_order_index(target_id, current_index)
        except Exception:
            self.db.rollback()
            logger.exception("Reorder step 2 failed for question %s, restoring", question_id)
            repo.set_order_index(question_id, current_index)
            raise

        try:
            repo.set_order_index(question_id, new_index)
        except Exception:
            self.db.rollback()
            logger.exception("Reorder step 3 failed for question %s, restoring", question_id)
            repo.set_order_index(target_id, new_index)
            repo.set_order_index(question_id, current_index)
            raise

    def get_question_results(self, tenant_slug: str, question_id: UUID) -> QuestionResults:
        """Aggregate every response recorded for one question."""
        try:
            ctx = self._context(tenant_slug)
            question = QuestionRepository(ctx).get_by_id(question_id)
            if question is None:
                raise NotFoundError("Question not found")

            responses = SurveyResponseRepository(ctx).get_for_question(question_id)
            result = QuestionResults(question=question, total_responses=len(responses))

            choices: Counter[str] = Counter()
            numbers: list[float] = []
            booleans: Counter[str] = Counter()
            for response in responses:
                answer = response.answer or {}
                if "array" in answer:
                    choices.update(str(item) for item in answer["array"])
                elif "number" in answer:
                    numbers.append(float(answer["number"]))
                elif "boolean" in answer:
                    booleans["yes" if answer["boolean"] else "no"] += 1
                elif "text" in answer:
                    if QuestionType(question.type) in CHOICE_QUESTION_TYPES:
                        choices[answer["text"]] += 1
                    else:
                        result.text_responses.append(answer["text"])

            result.choice_counts = dict(choices)
            if numbers:
                distribution = Counter(f"{value:g}" for value in numbers)
                result.numeric_stats = {
                    "min": min(numbers),
                    "max": max(numbers),
                    "mean": statistics.fmean(numbers),
                    "median": statistics.median(numbers),
                    "distribution": dict(sorted(distribution.items())),
                }
            if booleans:
                result.boolean_counts = {"yes": booleans["yes"], "no": booleans["no"]}
            return result
        except Exception as exc:
            return fail(QuestionResults(), exc, self.db)
