"""Public survey flow: fetching active questions and recording answers."""

import json
import logging
import secrets
import string
import time
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from pulse.core.errors import NotFoundError
from pulse.core.rate_limiter import RateLimiterRegistry, RateLimitKind, rate_limiters
from pulse.core.tenant import TenantResolver
from pulse.models.survey_question import SurveyQuestion
from pulse.repositories.question_repository import QuestionRepository
from pulse.repositories.survey_response_repository import SurveyResponseRepository
from pulse.schemas.survey import QuestionAnswer, SurveySubmission
from pulse.services.results import ServiceResult, fail

logger = logging.getLogger(__name__)


@dataclass
class SurveyResult(ServiceResult):
    tenant_id: UUID | None = None
    coupon_id: UUID | None = None
    questions: list[SurveyQuestion] = field(default_factory=list)


@dataclass
class SubmissionResult(ServiceResult):
    success: bool = False
    session_id: str | None = None


def tag_answer(answer: QuestionAnswer) -> dict[str, Any] | None:
    """Convert one answer into its stored tagged form.

    Text holding a JSON array (multiple choice) becomes ``{"array": [...]}``,
    other text ``{"text": ...}``, then ``{"number": ...}`` and
    ``{"boolean": ...}``. An empty answer is stored as null.
    """
    if answer.answer_text is not None:
        try:
            parsed = json.loads(answer.answer_text)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return {"array": parsed}
        return {"text": answer.answer_text}
    if answer.answer_number is not None:
        number = answer.answer_number
        return {"number": int(number) if number.is_integer() else number}
    if answer.answer_boolean is not None:
        return {"boolean": answer.answer_boolean}
    return None


def build_session_id(coupon_id: UUID | None, email: str | None) -> str:
    """Group the answers of one submission under a single session id."""
    if coupon_id and email:
        return f"{coupon_id}-{email}"
    alphabet = string.ascii_lowercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(7))
    return f"session-{int(time.time() * 1000)}-{suffix}"


class SurveyService:
    def __init__(self, db: Session, limiters: RateLimiterRegistry | None = None):
        self.db = db
        self.limiters = limiters or rate_limiters

    def get_survey(self, tenant_slug: str, coupon_id: UUID | None = None) -> SurveyResult:
        """Active questions of the tenant in display order.

        The same survey is served whichever coupon it leads to; ``coupon_id``
        is echoed back for the client.
        """
        try:
            ctx = TenantResolver(self.db).context(tenant_slug)
            questions = QuestionRepository(ctx).get_all(active_only=True)
            return SurveyResult(tenant_id=ctx.tenant_id, coupon_id=coupon_id, questions=questions)
        except Exception as exc:
            return fail(SurveyResult(), exc, self.db)

    def submit_survey_answers(
        self, tenant_slug: str, submission: SurveySubmission, client: str = "unknown"
    ) -> SubmissionResult:
        """Store one response row per answer, all under one session id."""
        try:
            self.limiters.enforce(RateLimitKind.SURVEY_SUBMIT, client)
            ctx = TenantResolver(self.db).context(tenant_slug)

            question_ids = {answer.question_id for answer in submission.answers}
            known = QuestionRepository(ctx).get_ids(question_ids)
            if known != question_ids:
                raise NotFoundError("Question not found")

            session_id = build_session_id(submission.coupon_id, submission.email)
            SurveyResponseRepository(ctx).create_many(
                session_id,
                [(answer.question_id, tag_answer(answer)) for answer in submission.answers],
            )
            logger.info(
                "Stored %d survey answers for tenant %s (session %s)",
                len(submission.answers),
                ctx.tenant_id,
                session_id,
            )
            return SubmissionResult(success=True, session_id=session_id)
        except Exception as exc:
            return fail(SubmissionResult(), exc, self.db)
