"""SurveyResponse model: one stored answer to one question."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String

from pulse.core.database import Base
from pulse.models.shared import UUIDType, generate_uuid, utc_now


class SurveyResponse(Base):
    __tablename__ = "survey_responses"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    tenant_id = Column(
        UUIDType,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id = Column(
        UUIDType,
        ForeignKey("survey_questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Tagged variant: {"text": ...} | {"number": ...} | {"boolean": ...} | {"array": [...]}
    answer = Column(JSON, nullable=True)
    session_id = Column(String(255), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
