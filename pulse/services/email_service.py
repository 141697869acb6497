"""Email opt-in collection for a tenant's mailing list."""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pulse.core.errors import ValidationFailedError
from pulse.core.rate_limiter import RateLimiterRegistry, RateLimitKind, rate_limiters
from pulse.core.tenant import TenantResolver
from pulse.models.email_opt_in import EmailOptIn
from pulse.repositories.email_opt_in_repository import EmailOptInRepository
from pulse.services.results import ServiceResult, fail

logger = logging.getLogger(__name__)


@dataclass
class EmailSubmitResult(ServiceResult):
    success: bool = False
    message: str | None = None


@dataclass
class EmailVerifyResult(ServiceResult):
    valid: bool = False


@dataclass
class EmailListResult(ServiceResult):
    opt_ins: list[EmailOptIn] | None = None


class EmailService:
    def __init__(self, db: Session, limiters: RateLimiterRegistry | None = None):
        self.db = db
        self.limiters = limiters or rate_limiters

    def submit_email(
        self, tenant_slug: str, email: str, client: str | None = None
    ) -> EmailSubmitResult:
        """Record consent for ``email``; submitting it again is a no-op success."""
        try:
            return self._submit(
                tenant_slug, email, RateLimitKind.EMAIL_SUBMIT, client
            )
        except Exception as exc:
            return fail(EmailSubmitResult(), exc, self.db)

    def submit_email_opt_in(
        self, tenant_slug: str, email: str, client: str | None = None
    ) -> EmailSubmitResult:
        """Opt-in after a social login; counted against its own budget first."""
        try:
            identifier = client or f"email:{email.strip().lower()}"
            self.limiters.enforce(RateLimitKind.EMAIL_OPT_IN, identifier)
            return self._submit(tenant_slug, email, RateLimitKind.EMAIL_SUBMIT, client)
        except Exception as exc:
            return fail(EmailSubmitResult(), exc, self.db)

    def _submit(
        self, tenant_slug: str, email: str, kind: RateLimitKind, client: str | None
    ) -> EmailSubmitResult:
        trimmed = email.strip()
        if not trimmed or "@" not in trimmed:
            raise ValidationFailedError("Invalid email address")

        self.limiters.enforce(kind, client or f"email:{trimmed.lower()}")
        ctx = TenantResolver(self.db).context(tenant_slug)
        repo = EmailOptInRepository(ctx)

        try:
            repo.create(trimmed)
        except IntegrityError:
            self.db.rollback()
            return EmailSubmitResult(success=True, message="Email already registered")

        logger.info("Email opt-in recorded for tenant %s", ctx.tenant_id)
        return EmailSubmitResult(success=True)

    def verify_email_opt_in(self, tenant_slug: str, email: str) -> EmailVerifyResult:
        try:
            ctx = TenantResolver(self.db).context(tenant_slug)
            if EmailOptInRepository(ctx).get_by_email(email.strip()) is None:
                return EmailVerifyResult(valid=False, error="Email not found in opt-in list")
            return EmailVerifyResult(valid=True)
        except Exception as exc:
            return fail(EmailVerifyResult(), exc, self.db)

    def list_email_opt_ins(self, tenant_slug: str) -> EmailListResult:
        try:
            ctx = TenantResolver(self.db).context(tenant_slug, include_inactive=True)
            return EmailListResult(opt_ins=EmailOptInRepository(ctx).get_all())
        except Exception as exc:
            return fail(EmailListResult(), exc, self.db)
