"""Survey question schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from pulse.models.survey_question import QuestionType


class QuestionCreate(BaseModel):
    question: str = Field(min_length=1)
    type: QuestionType
    options: list[str] | None = None
    is_active: bool = True


class QuestionUpdate(BaseModel):
    question: str | None = Field(default=None, min_length=1)
    type: QuestionType | None = None
    options: list[str] | None = None
    is_active: bool | None = None


class ReorderRequest(BaseModel):
    direction: Literal["up", "down"]


class QuestionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    question: str
    type: str
    options: list[str] = Field(default_factory=list)
    order_index: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class QuestionMutationResponse(BaseModel):
    success: bool
    question: QuestionResponse | None = None
    error: str | None = None


class NumericStats(BaseModel):
    min: float
    max: float
    mean: float
    median: float
    distribution: dict[str, int]


class BooleanCounts(BaseModel):
    yes: int = 0
    no: int = 0


class QuestionResultsResponse(BaseModel):
    question_id: UUID
    question: str
    type: str
    total_responses: int
    choice_counts: dict[str, int] = Field(default_factory=dict)
    numeric_stats: NumericStats | None = None
    boolean_counts: BooleanCounts | None = None
    text_responses: list[str] = Field(default_factory=list)
