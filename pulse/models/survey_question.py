"""SurveyQuestion model: one ordered question in a tenant's survey."""

from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from pulse.core.database import Base
from pulse.models.shared import UUIDType, generate_uuid


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    SINGLE_CHOICE = "single_choice"
    RANKED_CHOICE = "ranked_choice"
    SENTIMENT = "sentiment"
    OPEN_TEXT = "open_text"
    NUMERIC = "numeric"
    SLIDER = "slider"
    NPS = "nps"
    LIKERT = "likert"
    RATING = "rating"
    YES_NO = "yes_no"
    DATE = "date"
    TIME = "time"


# Question types whose options list is meaningful
CHOICE_QUESTION_TYPES = frozenset(
    {
        QuestionType.MULTIPLE_CHOICE,
        QuestionType.SINGLE_CHOICE,
        QuestionType.RANKED_CHOICE,
        QuestionType.SENTIMENT,
    }
)


class SurveyQuestion(Base):
    __tablename__ = "survey_questions"
    __table_args__ = (
        UniqueConstraint("tenant_id", "order_index", name="uq_survey_questions_tenant_order"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    tenant_id = Column(
        UUIDType,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question = Column(Text, nullable=False)
    type = Column(String(30), nullable=False)
    options = Column(JSON, nullable=False, default=list)
    order_index = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
