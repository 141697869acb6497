"""Issued coupon service: issuance, validation, redemption and admin edits.

Every public method resolves the tenant from its slug, works through a
``TenantContext`` and returns a result object instead of raising.
"""

import logging
import math
import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal, assert_never
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from pulse.core.config import settings
from pulse.core.errors import (
    AuthorizationBlockedError,
    ConflictError,
    ErrorKind,
    NotFoundError,
    ServiceError,
    ValidationFailedError,
)
from pulse.core.rate_limiter import RateLimiterRegistry, RateLimitKind, rate_limiters
from pulse.core.tenant import TenantContext, TenantResolver
from pulse.models.issued_coupon import IssuedCoupon, IssuedCouponStatus, is_terminal
from pulse.models.shared import as_utc, utc_now
from pulse.repositories.coupon_repository import CouponRepository
from pulse.repositories.issued_coupon_repository import IssuedCouponRepository
from pulse.schemas.issued_coupon import IssuedCouponUpdate
from pulse.services.results import ServiceResult, fail

logger = logging.getLogger(__name__)

_BASE36_ALPHABET = string.digits + string.ascii_uppercase

CouponStatusLabel = Literal["redeemed", "revoked", "expired", "cancelled"]


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_coupon_code(prefix: str | None = None, now: datetime | None = None) -> str:
    """Build ``PREFIX-<base36 ms timestamp>-<6 random base36 chars>``."""
    prefix = prefix or settings.COUPON_CODE_PREFIX
    now = now or utc_now()
    timestamp = to_base36(int(now.timestamp() * 1000))
    random_part = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(6))
    return f"{prefix}-{timestamp}-{random_part}".upper()


def normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    email = email.strip().lower()
    return email or None


@dataclass
class IssueCouponResult(ServiceResult):
    issued_coupon: IssuedCoupon | None = None


@dataclass
class ValidateCouponResult(ServiceResult):
    valid: bool = False
    issued_coupon: IssuedCoupon | None = None
    message: str | None = None


@dataclass
class SurveyCompletionResult(ServiceResult):
    completed: bool = False


@dataclass
class RedeemedCheckResult(ServiceResult):
    redeemed: bool = False


@dataclass
class CouponStatusResult(ServiceResult):
    status: CouponStatusLabel | None = None


@dataclass
class ExistingCouponResult(ServiceResult):
    exists: bool = False
    issued_coupon: IssuedCoupon | None = None


@dataclass
class IssuedCouponRow:
    issued_coupon: IssuedCoupon
    coupon_title: str | None


@dataclass
class IssuedCouponPage(ServiceResult):
    issued_coupons: list[IssuedCouponRow] | None = None
    total_count: int = 0
    total_pages: int = 0


@dataclass
class IssuedCouponMutationResult(ServiceResult):
    success: bool = False
    issued_coupon: IssuedCoupon | None = None


@dataclass
class _Rejection:
    error: str
    message: str
    kind: ErrorKind = ErrorKind.BUSINESS_RULE


_TERMINAL_REJECTIONS: dict[IssuedCouponStatus, _Rejection] = {
    IssuedCouponStatus.REVOKED: _Rejection(
        "Coupon has been revoked", "This coupon has been revoked"
    ),
    IssuedCouponStatus.EXPIRED: _Rejection("Coupon has expired", "This coupon has expired"),
    IssuedCouponStatus.CANCELLED: _Rejection(
        "Coupon has been cancelled", "This coupon has been cancelled"
    ),
}


def _rejection_for(issued_coupon: IssuedCoupon) -> _Rejection | None:
    """Why ``issued_coupon`` cannot be redeemed right now, if anything."""
    status = issued_coupon.status_enum
    if is_terminal(status):
        return _TERMINAL_REJECTIONS[status]

    if issued_coupon.redemptions_count >= issued_coupon.max_redemptions:  # type: ignore[operator]
        return _Rejection(
            "Coupon has reached maximum redemptions", "This coupon has already been used"
        )
    return None


class IssuedCouponService:
    """Service for the issued coupon lifecycle of every tenant."""

    def __init__(self, db: Session, limiters: RateLimiterRegistry | None = None):
        self.db = db
        self.limiters = limiters or rate_limiters

    def _context(self, tenant_slug: str) -> TenantContext:
        return TenantResolver(self.db).context(tenant_slug)

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def issue_coupon(
        self,
        tenant_slug: str,
        coupon_id: UUID,
        email: str | None = None,
        expires_at: datetime | None = None,
        client: str = "unknown",
    ) -> IssueCouponResult:
        """Issue a coupon code to a visitor.

        Issuing twice for the same (tenant, coupon, email) returns the first
        row unchanged. Anonymous visitors (no email) get a new code each time.
        An explicit ``expires_at`` may shorten, never extend, the definition's expiry.
        """
        try:
            return IssueCouponResult(
                issued_coupon=self._issue(tenant_slug, coupon_id, email, expires_at, client)
            )
        except Exception as exc:
            return fail(IssueCouponResult(), exc, self.db)

    def _issue(
        self,
        tenant_slug: str,
        coupon_id: UUID,
        email: str | None,
        expires_at: datetime | None,
        client: str,
    ) -> IssuedCoupon:
        self.limiters.enforce(RateLimitKind.COUPON_ISSUE, client)
        ctx = self._context(tenant_slug)

        coupon = CouponRepository(ctx).get_by_id(coupon_id)
        if coupon is None:
            raise NotFoundError("Coupon not found")

        repo = IssuedCouponRepository(ctx)
        email = normalize_email(email)

        if email:
            existing = self._find_existing_for_issue(repo, ctx, coupon_id, email)
            if existing is not None:
                return existing

        # A code never outlives its definition
        definition_expires_at = as_utc(coupon.expires_at)  # type: ignore[arg-type]
        expires_at = as_utc(expires_at)
        if expires_at is None or (
            definition_expires_at is not None and expires_at > definition_expires_at
        ):
            expires_at = definition_expires_at

        for attempt in range(1, settings.COUPON_CODE_MAX_ATTEMPTS + 1):
            code = generate_coupon_code()
            try:
                issued_coupon = repo.create(
                    coupon_id=coupon_id,
                    code=code,
                    email=email,
                    max_redemptions=coupon.max_redemptions,  # type: ignore[arg-type]
                    expires_at=expires_at,
                    issued_at=utc_now(),
                )
            except IntegrityError:
                self.db.rollback()
                if email:
                    winner = repo.get_latest_for_customer(coupon_id, email)
                    if winner is not None:
                        logger.info(
                            "Concurrent issuance for tenant %s coupon %s resolved to %s",
                            ctx.tenant_id,
                            coupon_id,
                            winner.code,
                        )
                        return winner
                logger.warning(
                    "Coupon code collision for tenant %s coupon %s (attempt %d of %d)",
                    ctx.tenant_id,
                    coupon_id,
                    attempt,
                    settings.COUPON_CODE_MAX_ATTEMPTS,
                )
                continue

            logger.info(
                "Issued coupon %s for tenant %s coupon %s",
                issued_coupon.code,
                ctx.tenant_id,
                coupon_id,
            )
            return issued_coupon

        raise ConflictError("Failed to generate unique coupon code after multiple attempts")

    def _find_existing_for_issue(
        self,
        repo: IssuedCouponRepository,
        ctx: TenantContext,
        coupon_id: UUID,
        email: str,
    ) -> IssuedCoupon | None:
        try:
            return repo.get_latest_for_customer(coupon_id, email)
        except SQLAlchemyError:
            self.db.rollback()
            policy = settings.ISSUANCE_DUPLICATE_CHECK_FAILURE_POLICY
            logger.exception(
                "Duplicate check failed for tenant %s coupon %s (policy: %s)",
                ctx.tenant_id,
                coupon_id,
                policy,
            )
            match policy:
                case "proceed":
                    return None
                case "reject":
                    raise ServiceError(
                        "Unable to check for an existing coupon, please try again"
                    ) from None
                case _:
                    assert_never(policy)

    # ------------------------------------------------------------------
    # Validation and redemption
    # ------------------------------------------------------------------

    def validate_coupon_code(
        self, tenant_slug: str, code: str, redeem: bool = False
    ) -> ValidateCouponResult:
        """Check a code and, with ``redeem``, consume one redemption.

        Expired codes are persisted as ``expired`` the first time they are
        seen past their expiry.
        """
        try:
            return self._validate(tenant_slug, code.strip(), redeem)
        except Exception as exc:
            return fail(ValidateCouponResult(), exc, self.db)

    def _validate(self, tenant_slug: str, code: str, redeem: bool) -> ValidateCouponResult:
        ctx = self._context(tenant_slug)
        repo = IssuedCouponRepository(ctx)

        issued_coupon = repo.get_by_code(code)
        if issued_coupon is None:
            return ValidateCouponResult(
                valid=False,
                error="Coupon code not found",
                message="Invalid coupon code",
                error_kind=ErrorKind.NOT_FOUND,
            )

        now = utc_now()
        expires_at = as_utc(issued_coupon.expires_at)  # type: ignore[arg-type]
        if expires_at is not None and expires_at < now:
            if issued_coupon.status != IssuedCouponStatus.EXPIRED.value:
                repo.mark_expired(issued_coupon.id)  # type: ignore[arg-type]
                repo.refresh(issued_coupon)
                logger.info("Marked coupon %s expired for tenant %s", code, ctx.tenant_id)
            return self._invalid(
                issued_coupon, _TERMINAL_REJECTIONS[IssuedCouponStatus.EXPIRED]
            )

        rejection = _rejection_for(issued_coupon)
        if rejection is not None:
            return self._invalid(issued_coupon, rejection)

        if not redeem:
            return ValidateCouponResult(
                valid=True, issued_coupon=issued_coupon, message="Coupon code is valid"
            )

        if issued_coupon.email and repo.has_other_fully_redeemed(issued_coupon):
            return self._invalid(
                issued_coupon,
                _Rejection(
                    "This customer has already redeemed this coupon",
                    "You cannot redeem the same coupon multiple times for the same customer",
                ),
            )

        try:
            updated = repo.redeem(issued_coupon, now)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception(
                "Failed to redeem coupon %s for tenant %s", code, ctx.tenant_id
            )
            return ValidateCouponResult(
                valid=False,
                issued_coupon=repo.get_by_code(code),
                error=str(exc) or "Failed to redeem coupon",
                error_kind=ErrorKind.UNEXPECTED,
            )

        repo.refresh(issued_coupon)
        if updated == 0:
            # Lost a race with another redeem: report the state it left behind
            logger.info("Concurrent redeem of coupon %s for tenant %s", code, ctx.tenant_id)
            rejection = _rejection_for(issued_coupon) or _Rejection(
                "Coupon has reached maximum redemptions", "This coupon has already been used"
            )
            return self._invalid(issued_coupon, rejection)

        logger.info(
            "Redeemed coupon %s for tenant %s (%s/%s)",
            code,
            ctx.tenant_id,
            issued_coupon.redemptions_count,
            issued_coupon.max_redemptions,
        )
        return ValidateCouponResult(
            valid=True, issued_coupon=issued_coupon, message="Coupon redeemed successfully"
        )

    @staticmethod
    def _invalid(issued_coupon: IssuedCoupon, rejection: _Rejection) -> ValidateCouponResult:
        return ValidateCouponResult(
            valid=False,
            issued_coupon=issued_coupon,
            error=rejection.error,
            message=rejection.message,
            error_kind=rejection.kind,
        )

    # ------------------------------------------------------------------
    # Read-only helpers for the public flow
    # ------------------------------------------------------------------

    def has_completed_survey_for_tenant(
        self, tenant_slug: str, email: str
    ) -> SurveyCompletionResult:
        """A visitor has completed the survey once any coupon was issued to them."""
        try:
            ctx = self._context(tenant_slug)
            email = normalize_email(email) or ""
            completed = IssuedCouponRepository(ctx).exists_for_email(email)
            return SurveyCompletionResult(completed=completed)
        except Exception as exc:
            return fail(SurveyCompletionResult(), exc, self.db)

    def is_coupon_already_redeemed(
        self, tenant_slug: str, coupon_id: UUID, email: str
    ) -> RedeemedCheckResult:
        try:
            ctx = self._context(tenant_slug)
            existing = IssuedCouponRepository(ctx).get_latest_for_customer(
                coupon_id, normalize_email(email) or ""
            )
            return RedeemedCheckResult(
                redeemed=existing is not None and existing.is_fully_redeemed
            )
        except Exception as exc:
            return fail(RedeemedCheckResult(), exc, self.db)

    def get_coupon_status(
        self, tenant_slug: str, coupon_id: UUID, email: str
    ) -> CouponStatusResult:
        """Status of the visitor's coupon: revoked > expired > cancelled > redeemed."""
        try:
            ctx = self._context(tenant_slug)
            existing = IssuedCouponRepository(ctx).get_latest_for_customer(
                coupon_id, normalize_email(email) or ""
            )
            if existing is None:
                return CouponStatusResult(status=None)

            status = existing.status_enum
            label: CouponStatusLabel | None
            match status:
                case IssuedCouponStatus.REVOKED:
                    label = "revoked"
                case IssuedCouponStatus.EXPIRED:
                    label = "expired"
                case IssuedCouponStatus.CANCELLED:
                    label = "cancelled"
                case IssuedCouponStatus.ISSUED | IssuedCouponStatus.REDEEMED:
                    label = "redeemed" if existing.is_fully_redeemed else None
                case _:
                    assert_never(status)
            return CouponStatusResult(status=label)
        except Exception as exc:
            return fail(CouponStatusResult(), exc, self.db)

    def check_existing_coupon(
        self,
        tenant_slug: str,
        coupon_id: UUID,
        email: str,
        client: str = "unknown",
    ) -> ExistingCouponResult:
        """Most recent coupon issued to ``email``, whatever its status."""
        try:
            self.limiters.enforce(RateLimitKind.COUPON_CHECK, client)
            ctx = self._context(tenant_slug)
            existing = IssuedCouponRepository(ctx).get_latest_for_customer(
                coupon_id, normalize_email(email) or ""
            )
            return ExistingCouponResult(exists=existing is not None, issued_coupon=existing)
        except Exception as exc:
            return fail(ExistingCouponResult(), exc, self.db)

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def get_issued_coupons_paginated(
        self, tenant_slug: str, page: int = 1, items_per_page: int = 10
    ) -> IssuedCouponPage:
        try:
            if page < 1 or items_per_page < 1:
                raise ValidationFailedError("page and items_per_page must be positive")
            ctx = TenantResolver(self.db).context(tenant_slug, include_inactive=True)
            repo = IssuedCouponRepository(ctx)

            total_count = repo.count()
            rows = repo.get_page(skip=(page - 1) * items_per_page, limit=items_per_page)
            return IssuedCouponPage(
                issued_coupons=[IssuedCouponRow(issued, title) for issued, title in rows],
                total_count=total_count,
                total_pages=math.ceil(total_count / items_per_page),
            )
        except Exception as exc:
            return fail(IssuedCouponPage(), exc, self.db)

    def update_issued_coupon(
        self, tenant_slug: str, issued_coupon_id: UUID, updates: IssuedCouponUpdate
    ) -> IssuedCouponMutationResult:
        """Apply an admin edit as given.

        The redemption count must stay within ``[0, max_redemptions]``; status
        is never derived from the count here.
        """
        try:
            ctx = TenantResolver(self.db).context(tenant_slug, include_inactive=True)
            issued_coupon = self._apply_update(ctx, issued_coupon_id, updates)
            return IssuedCouponMutationResult(success=True, issued_coupon=issued_coupon)
        except Exception as exc:
            return fail(IssuedCouponMutationResult(), exc, self.db)

    def _apply_update(
        self, ctx: TenantContext, issued_coupon_id: UUID, updates: IssuedCouponUpdate
    ) -> IssuedCoupon:
        repo = IssuedCouponRepository(ctx)
        current = repo.get_by_id(issued_coupon_id)
        if current is None:
            logger.warning(
                "Update of issued coupon %s blocked for tenant %s: not visible",
                issued_coupon_id,
                ctx.tenant_id,
            )
            raise AuthorizationBlockedError("Update blocked - no rows were updated")

        values: dict[str, Any] = {}
        now = utc_now()

        if updates.redemptions_count is not None:
            if not 0 <= updates.redemptions_count <= current.max_redemptions:  # type: ignore[operator]
                raise ValidationFailedError(
                    f"Redemptions count must be between 0 and {current.max_redemptions}"
                )
            values["redemptions_count"] = updates.redemptions_count

        status = updates.status
        if status is not None:
            values["status"] = status.value
            match status:
                case IssuedCouponStatus.REVOKED:
                    values["revoked_at"] = now
                case IssuedCouponStatus.REDEEMED:
                    if current.redeemed_at is None:
                        values["redeemed_at"] = now
                case (
                    IssuedCouponStatus.ISSUED
                    | IssuedCouponStatus.EXPIRED
                    | IssuedCouponStatus.CANCELLED
                ):
                    pass
                case _:
                    assert_never(status)

        if updates.metadata is not None:
            values["metadata_"] = updates.metadata

        if not values:
            return current

        if repo.update_fields(issued_coupon_id, values) == 0:
            logger.error(
                "Update of issued coupon %s blocked for tenant %s: no rows updated",
                issued_coupon_id,
                ctx.tenant_id,
            )
            raise AuthorizationBlockedError("Update blocked - no rows were updated")

        logger.info(
            "Updated issued coupon %s for tenant %s: %s",
            issued_coupon_id,
            ctx.tenant_id,
            sorted(values),
        )
        return repo.refresh(current)

    def adjust_redemptions(
        self, tenant_slug: str, issued_coupon_id: UUID, delta: int
    ) -> IssuedCouponMutationResult:
        """Move the redemption count by ``delta``, clamped to ``[0, max_redemptions]``.

        Reaching the maximum marks the coupon ``redeemed``; dropping below it
        puts a ``redeemed`` coupon back to ``issued``.
        """
        try:
            ctx = TenantResolver(self.db).context(tenant_slug, include_inactive=True)
            current = IssuedCouponRepository(ctx).get_by_id(issued_coupon_id)
            if current is None:
                raise AuthorizationBlockedError("Update blocked - no rows were updated")

            max_redemptions: int = current.max_redemptions  # type: ignore[assignment]
            new_count = min(max(current.redemptions_count + delta, 0), max_redemptions)

            status: IssuedCouponStatus | None = None
            if new_count >= max_redemptions:
                status = IssuedCouponStatus.REDEEMED
            elif current.status == IssuedCouponStatus.REDEEMED.value:
                status = IssuedCouponStatus.ISSUED

            issued_coupon = self._apply_update(
                ctx,
                issued_coupon_id,
                IssuedCouponUpdate(redemptions_count=new_count, status=status),
            )
            return IssuedCouponMutationResult(success=True, issued_coupon=issued_coupon)
        except Exception as exc:
            return fail(IssuedCouponMutationResult(), exc, self.db)

    def record_engagement(
        self, tenant_slug: str, issued_coupon_id: UUID, flag: str
    ) -> IssuedCouponMutationResult:
        """Flag a visitor action (wallet pass added, downloaded...) in metadata."""
        try:
            ctx = self._context(tenant_slug)
            current = IssuedCouponRepository(ctx).get_by_id(issued_coupon_id)
            if current is None:
                raise NotFoundError("Issued coupon not found")

            metadata = dict(current.metadata_ or {})
            metadata[flag] = True
            metadata[f"{flag}_at"] = utc_now().isoformat()

            issued_coupon = self._apply_update(
                ctx, issued_coupon_id, IssuedCouponUpdate(metadata=metadata)
            )
            return IssuedCouponMutationResult(success=True, issued_coupon=issued_coupon)
        except Exception as exc:
            return fail(IssuedCouponMutationResult(), exc, self.db)
