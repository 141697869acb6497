"""Survey question repository for data access."""

from typing import Any
from uuid import UUID

from sqlalchemy import func

from pulse.core.tenant import TenantContext
from pulse.models.survey_question import SurveyQuestion


class QuestionRepository:
    """Repository for SurveyQuestion rows of one tenant."""

    def __init__(self, ctx: TenantContext):
        self.ctx = ctx

    def get_all(self, active_only: bool = False) -> list[SurveyQuestion]:
        query = self.ctx.query(SurveyQuestion)
        if active_only:
            query = query.filter(SurveyQuestion.is_active.is_(True))
        return query.order_by(SurveyQuestion.order_index.asc()).all()

    def get_by_id(self, question_id: UUID) -> SurveyQuestion | None:
        return self.ctx.query(SurveyQuestion).filter(SurveyQuestion.id == question_id).first()

    def get_by_order_index(self, order_index: int) -> SurveyQuestion | None:
        return (
            self.ctx.query(SurveyQuestion)
            .filter(SurveyQuestion.order_index == order_index)
            .first()
        )

    def get_ids(self, question_ids: set[UUID]) -> set[UUID]:
        rows = (
            self.ctx.query(SurveyQuestion, SurveyQuestion.id)
            .filter(SurveyQuestion.id.in_(question_ids))
            .all()
        )
        return {row[0] for row in rows}

    def next_order_index(self) -> int:
        """Max order_index plus one, or 1 for a tenant with no questions."""
        current = self.ctx.query(SurveyQuestion, func.max(SurveyQuestion.order_index)).scalar()
        return (current or 0) + 1

    def get_after(self, order_index: int) -> list[SurveyQuestion]:
        return (
            self.ctx.query(SurveyQuestion)
            .filter(SurveyQuestion.order_index > order_index)
            .order_by(SurveyQuestion.order_index.asc())
            .all()
        )

    def create(
        self, question: str, type: str, options: list[Any], order_index: int, is_active: bool
    ) -> SurveyQuestion:
        row = SurveyQuestion(
            question=question,
            type=type,
            options=options,
            order_index=order_index,
            is_active=is_active,
        )
        self.ctx.add(row)
        self.ctx.db.commit()
        self.ctx.db.refresh(row)
        return row

    def update_fields(self, question_id: UUID, values: dict[str, Any]) -> int:
        columns = {getattr(SurveyQuestion, key): value for key, value in values.items()}
        rowcount = (
            self.ctx.query(SurveyQuestion)
            .filter(SurveyQuestion.id == question_id)
            .update(columns, synchronize_session=False)
        )
        self.ctx.db.commit()
        return rowcount

    def set_order_index(self, question_id: UUID, order_index: int) -> int:
        return self.update_fields(question_id, {"order_index": order_index})

    def delete(self, question_id: UUID) -> int:
        rowcount = (
            self.ctx.query(SurveyQuestion)
            .filter(SurveyQuestion.id == question_id)
            .delete(synchronize_session=False)
        )
        self.ctx.db.commit()
        return rowcount
