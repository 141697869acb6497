"""Error taxonomy shared by services and routers.

Services raise these internally and convert them into result objects at their
public boundary. Routers map ``ErrorKind`` onto HTTP status codes.
"""

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    CONFLICT = "conflict"
    AUTHORIZATION_BLOCKED = "authorization_blocked"
    BUSINESS_RULE = "business_rule"
    VALIDATION = "validation"
    UNEXPECTED = "unexpected"


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.CONFLICT: 409,
    ErrorKind.AUTHORIZATION_BLOCKED: 403,
    ErrorKind.BUSINESS_RULE: 400,
    ErrorKind.VALIDATION: 422,
    ErrorKind.UNEXPECTED: 500,
}


class ServiceError(Exception):
    """Base class for errors surfaced to callers as a result object."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str, user_message: str | None = None):
        super().__init__(message)
        self.message = message
        self.user_message = user_message


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND


class TenantNotFoundError(NotFoundError):
    def __init__(self, slug: str):
        super().__init__(f"Tenant not found: {slug}")
        self.slug = slug


class RateLimitedError(ServiceError):
    kind = ErrorKind.RATE_LIMITED

    def __init__(self, action: str, retry_after_seconds: int):
        super().__init__(
            f"Too many {action} requests. Please try again in {retry_after_seconds} seconds."
        )
        self.retry_after_seconds = retry_after_seconds


class ConflictError(ServiceError):
    kind = ErrorKind.CONFLICT


class AuthorizationBlockedError(ServiceError):
    kind = ErrorKind.AUTHORIZATION_BLOCKED


class BusinessRuleViolation(ServiceError):
    kind = ErrorKind.BUSINESS_RULE


class ValidationFailedError(ServiceError):
    kind = ErrorKind.VALIDATION
