"""Result objects returned across service boundaries.

Public service operations never raise: failures are carried in ``error``
(a human-readable message) and ``error_kind`` (for status mapping).
"""

import logging
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy.orm import Session

from pulse.core.errors import ErrorKind, RateLimitedError, ServiceError

logger = logging.getLogger(__name__)


@dataclass
class ServiceResult:
    error: str | None = None
    error_kind: ErrorKind | None = None
    retry_after_seconds: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


R = TypeVar("R", bound=ServiceResult)


def fail(result: R, exc: Exception, db: Session | None = None) -> R:
    """Fill ``result`` from an exception raised inside a service operation.

    Typed ``ServiceError``s keep their message and kind. Anything else is
    unexpected: it is logged with its traceback, the session is rolled back
    and the exception text becomes the error message.
    """
    if isinstance(exc, ServiceError):
        result.error = exc.message
        result.error_kind = exc.kind
        if isinstance(exc, RateLimitedError):
            result.retry_after_seconds = exc.retry_after_seconds
        return result

    logger.exception("Unexpected error in service operation")
    if db is not None:
        db.rollback()
    result.error = str(exc) or "An error occurred"
    result.error_kind = ErrorKind.UNEXPECTED
    return result
