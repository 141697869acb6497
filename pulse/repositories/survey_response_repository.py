from typing import Any
from uuid import UUID

from sqlalchemy import func

from pulse.core.tenant import TenantContext
from pulse.models.survey_response import SurveyResponse


class SurveyResponseRepository:
    def __init__(self, ctx: TenantContext):
        self.ctx = ctx

    def create_many(self, session_id: str, answers: list[tuple[UUID, Any]]) -> list[SurveyResponse]:
        """Insert one response row per (question_id, tagged answer) in one commit."""
        rows = [
            SurveyResponse(question_id=question_id, answer=answer, session_id=session_id)
            for question_id, answer in answers
        ]
        for row in rows:
            self.ctx.add(row)
        self.ctx.db.commit()
        return rows

    def get_for_question(self, question_id: UUID) -> list[SurveyResponse]:
        return (
            self.ctx.query(SurveyResponse)
            .filter(SurveyResponse.question_id == question_id)
            .order_by(SurveyResponse.created_at.asc())
            .all()
        )

    def count(self) -> int:
        return self.ctx.query(SurveyResponse).count()

    def count_sessions(self) -> int:
        return (
            self.ctx.query(SurveyResponse, func.count(func.distinct(SurveyResponse.session_id)))
            .scalar()
            or 0
        )
