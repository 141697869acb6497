"""Public survey schemas."""

from uuid import UUID

from pydantic import BaseModel, Field

from pulse.schemas.question import QuestionResponse


class QuestionAnswer(BaseModel):
    """One answer. Exactly one of the ``answer_*`` fields is expected."""

    question_id: UUID
    answer_text: str | None = None
    answer_number: float | None = None
    answer_boolean: bool | None = None


class SurveySubmission(BaseModel):
    coupon_id: UUID | None = None
    email: str | None = None
    answers: list[QuestionAnswer] = Field(min_length=1)


class SurveyQuestionsResponse(BaseModel):
    tenant_id: UUID
    coupon_id: UUID | None = None
    questions: list[QuestionResponse]


class SubmissionResponse(BaseModel):
    success: bool
    error: str | None = None
