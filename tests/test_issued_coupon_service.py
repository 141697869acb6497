"""Issued coupon service tests: issuance, validation, redemption and admin edits."""

import re
import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from pulse.core.config import settings
from pulse.core.database import get_db
from pulse.core.errors import ErrorKind
from pulse.models.coupon import Coupon
from pulse.models.issued_coupon import IssuedCoupon, IssuedCouponStatus, is_terminal
from pulse.models.shared import as_utc
from pulse.models.tenant import Tenant
from pulse.repositories.issued_coupon_repository import IssuedCouponRepository
from pulse.schemas.issued_coupon import IssuedCouponUpdate
from pulse.services.issued_coupon_service import (
    IssuedCouponService,
    generate_coupon_code,
    normalize_email,
    to_base36,
)
from tests.conftest import DEFAULT_TENANT_ID, DEFAULT_TENANT_SLUG

CODE_PATTERN = re.compile(r"^CPN-[0-9A-Z]+-[0-9A-Z]{6}$")


@pytest.fixture
def db_session():
    """Create a database session for direct service testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def service(db_session):
    return IssuedCouponService(db_session)


def _make_coupon(db_session, max_redemptions=1, tenant_id=DEFAULT_TENANT_ID, **kwargs):
    coupon = Coupon(
        tenant_id=tenant_id,
        title=kwargs.pop("title", "Free coffee"),
        max_redemptions=max_redemptions,
        **kwargs,
    )
    db_session.add(coupon)
    db_session.commit()
    db_session.refresh(coupon)
    return coupon


@pytest.fixture
def coupon(db_session):
    return _make_coupon(db_session)


@pytest.fixture
def double_coupon(db_session):
    return _make_coupon(db_session, max_redemptions=2, title="Two coffees")


def _issue(service, coupon, email=None, client=None, **kwargs):
    result = service.issue_coupon(
        DEFAULT_TENANT_SLUG,
        coupon.id,
        email=email,
        client=client or f"test:{uuid.uuid4().hex}",
        **kwargs,
    )
    assert result.ok, result.error
    return result.issued_coupon


def _reload(db_session, issued_coupon_id):
    db_session.expire_all()
    return db_session.query(IssuedCoupon).filter(IssuedCoupon.id == issued_coupon_id).one()


class TestCodeGeneration:
    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "Z"
        assert to_base36(36) == "10"

    def test_code_format(self):
        assert CODE_PATTERN.match(generate_coupon_code())

    def test_custom_prefix_is_uppercased(self):
        code = generate_coupon_code(prefix="vip", now=datetime(2026, 1, 1, tzinfo=UTC))
        assert code.startswith("VIP-")

    def test_timestamp_part(self):
        now = datetime(2026, 1, 1, tzinfo=UTC)
        code = generate_coupon_code(now=now)
        assert code.split("-")[1] == to_base36(int(now.timestamp() * 1000))

    def test_normalize_email(self):
        assert normalize_email("  Jane@Acme.IO ") == "jane@acme.io"
        assert normalize_email("   ") is None
        assert normalize_email(None) is None


class TestStatus:
    @pytest.mark.parametrize(
        ("status", "terminal"),
        [
            (IssuedCouponStatus.ISSUED, False),
            (IssuedCouponStatus.REDEEMED, False),
            (IssuedCouponStatus.REVOKED, True),
            (IssuedCouponStatus.EXPIRED, True),
            (IssuedCouponStatus.CANCELLED, True),
        ],
    )
    def test_is_terminal(self, status, terminal):
        assert is_terminal(status) is terminal


class TestIssueCoupon:
    def test_issue_with_email(self, service, coupon):
        issued = _issue(service, coupon, email="jane@acme.io")
        assert CODE_PATTERN.match(issued.code)
        assert issued.tenant_id == DEFAULT_TENANT_ID
        assert issued.coupon_id == coupon.id
        assert issued.email == "jane@acme.io"
        assert issued.status == "issued"
        assert issued.redemptions_count == 0
        assert issued.max_redemptions == 1

    def test_issue_is_idempotent_per_email(self, service, coupon):
        first = _issue(service, coupon, email="jane@acme.io")
        second = _issue(service, coupon, email="  JANE@acme.io")
        assert second.id == first.id
        assert second.code == first.code

    def test_same_email_different_coupon(self, db_session, service, coupon):
        other = _make_coupon(db_session, title="Free bagel")
        first = _issue(service, coupon, email="jane@acme.io")
        second = _issue(service, other, email="jane@acme.io")
        assert first.code != second.code

    def test_anonymous_visitors_get_distinct_codes(self, service, coupon):
        codes = {_issue(service, coupon).code for _ in range(3)}
        assert len(codes) == 3

    def test_inherits_coupon_settings(self, db_session, service):
        expires_at = datetime.now(UTC) + timedelta(days=7)
        coupon = _make_coupon(db_session, max_redemptions=3, expires_at=expires_at)
        issued = _issue(service, coupon)
        assert issued.max_redemptions == 3
        assert issued.expires_at is not None

    def test_expiry_cannot_outlive_definition(self, db_session, service):
        expires_at = datetime.now(UTC) + timedelta(days=1)
        coupon = _make_coupon(db_session, expires_at=expires_at)
        issued = _issue(service, coupon, expires_at=datetime.now(UTC) + timedelta(days=365))
        assert as_utc(issued.expires_at) == expires_at

    def test_expiry_can_be_shortened(self, db_session, service):
        coupon = _make_coupon(db_session, expires_at=datetime.now(UTC) + timedelta(days=7))
        shorter = datetime.now(UTC) + timedelta(hours=1)
        issued = _issue(service, coupon, expires_at=shorter)
        assert as_utc(issued.expires_at) == shorter

    def test_unknown_coupon(self, service):
        result = service.issue_coupon(DEFAULT_TENANT_SLUG, uuid.uuid4(), client="test:1")
        assert result.issued_coupon is None
        assert result.error == "Coupon not found"
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_unknown_tenant(self, service, coupon):
        result = service.issue_coupon("nope", coupon.id, client="test:1")
        assert result.error == "Tenant not found: nope"
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_coupon_of_other_tenant(self, db_session, service):
        db_session.add(Tenant(id=uuid.uuid4(), slug="globex", name="Globex", active=True))
        db_session.commit()
        coupon = _make_coupon(db_session)
        result = service.issue_coupon("globex", coupon.id, client="test:1")
        assert result.error == "Coupon not found"

    def test_rate_limited(self, service, coupon):
        for _ in range(settings.RATE_LIMIT_COUPON_ISSUE_MAX):
            _issue(service, coupon, client="ip:1.2.3.4")
        result = service.issue_coupon(DEFAULT_TENANT_SLUG, coupon.id, client="ip:1.2.3.4")
        assert result.issued_coupon is None
        assert result.error_kind == ErrorKind.RATE_LIMITED
        assert result.retry_after_seconds >= 1
        assert result.error.startswith("Too many coupon requests")

    def test_code_collision_is_retried(self, db_session, service, coupon):
        taken = _issue(service, coupon)
        with patch(
            "pulse.services.issued_coupon_service.generate_coupon_code",
            side_effect=[taken.code, "CPN-FRESH-ABC123"],
        ):
            issued = _issue(service, coupon)
        assert issued.code == "CPN-FRESH-ABC123"

    def test_code_generation_exhausted(self, monkeypatch, service, coupon):
        taken = _issue(service, coupon)
        monkeypatch.setattr(settings, "COUPON_CODE_MAX_ATTEMPTS", 3)
        with patch(
            "pulse.services.issued_coupon_service.generate_coupon_code",
            return_value=taken.code,
        ) as generate:
            result = service.issue_coupon(DEFAULT_TENANT_SLUG, coupon.id, client="test:x")
        assert generate.call_count == 3
        assert result.error == "Failed to generate unique coupon code after multiple attempts"
        assert result.error_kind == ErrorKind.CONFLICT

    def test_concurrent_issue_returns_winner(self, monkeypatch, service, coupon):
        winner = _issue(service, coupon, email="jane@acme.io")
        original = IssuedCouponRepository.get_latest_for_customer
        calls = []

        def miss_first_lookup(self, coupon_id, email):
            calls.append(email)
            if len(calls) == 1:
                return None
            return original(self, coupon_id, email)

        monkeypatch.setattr(
            IssuedCouponRepository, "get_latest_for_customer", miss_first_lookup
        )
        issued = _issue(service, coupon, email="jane@acme.io")
        assert issued.id == winner.id
        assert len(calls) == 2

    def test_failed_duplicate_check_proceeds(self, monkeypatch, service, coupon):
        monkeypatch.setattr(settings, "ISSUANCE_DUPLICATE_CHECK_FAILURE_POLICY", "proceed")
        with patch.object(
            IssuedCouponRepository,
            "get_latest_for_customer",
            side_effect=OperationalError("SELECT", {}, Exception("connection lost")),
        ):
            issued = _issue(service, coupon, email="jane@acme.io")
        assert issued.email == "jane@acme.io"

    def test_failed_duplicate_check_rejects(self, monkeypatch, service, coupon):
        monkeypatch.setattr(settings, "ISSUANCE_DUPLICATE_CHECK_FAILURE_POLICY", "reject")
        with patch.object(
            IssuedCouponRepository,
            "get_latest_for_customer",
            side_effect=OperationalError("SELECT", {}, Exception("connection lost")),
        ):
            result = service.issue_coupon(
                DEFAULT_TENANT_SLUG, coupon.id, email="jane@acme.io", client="test:1"
            )
        assert result.issued_coupon is None
        assert result.error == "Unable to check for an existing coupon, please try again"


class TestValidateCoupon:
    def test_unknown_code(self, service):
        result = service.validate_coupon_code(DEFAULT_TENANT_SLUG, "CPN-NOPE-000000")
        assert result.valid is False
        assert result.error == "Coupon code not found"
        assert result.message == "Invalid coupon code"
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_code_of_other_tenant(self, db_session, service, coupon):
        issued = _issue(service, coupon)
        db_session.add(Tenant(id=uuid.uuid4(), slug="globex", name="Globex", active=True))
        db_session.commit()
        result = service.validate_coupon_code("globex", issued.code)
        assert result.error == "Coupon code not found"

    def test_valid_code_is_not_consumed(self, db_session, service, coupon):
        issued = _issue(service, coupon)
        result = service.validate_coupon_code(DEFAULT_TENANT_SLUG, f"  {issued.code} ")
        assert result.valid is True
        assert result.error is None
        assert result.message == "Coupon code is valid"
        assert _reload(db_session, issued.id).redemptions_count == 0

    def test_redeem(self, db_session, service, coupon):
        issued = _issue(service, coupon)
        result = service.validate_coupon_code(DEFAULT_TENANT_SLUG, issued.code, redeem=True)
        assert result.valid is True
        assert result.message == "Coupon redeemed successfully"
        stored = _reload(db_session, issued.id)
        assert stored.redemptions_count == 1
        assert stored.status == "redeemed"
        assert stored.redeemed_at is not None

    def test_redeem_beyond_maximum(self, service, coupon):
        issued = _issue(service, coupon)
        service.validate_coupon_code(DEFAULT_TENANT_SLUG, issued.code, redeem=True)
        result = service.validate_coupon_code(DEFAULT_TENANT_SLUG, issued.code, redeem=True)
        assert result.valid is False
        assert result.error == "Coupon has reached maximum redemptions"
        assert result.message == "This coupon has already been used"
        assert result.error_kind == ErrorKind.BUSINESS_RULE

    def test_multi_use_coupon(self, db_session, service, double_coupon):
        issued = _issue(service, double_coupon)

        service.validate_coupon_code(DEFAULT_TENANT_SLUG, issued.code, redeem=True)
        stored = _reload(db_session, issued.id)
        assert stored.redemptions_count == 1
        assert stored.status == "issued"
        assert stored.redeemed_at is None

        service.validate_coupon_code(DEFAULT_TENANT_SLUG, issued.code, redeem=True)
        stored = _reload(db_session, issued.id)
        assert stored.redemptions_count == 2
        assert stored.status == "redeemed"

        result = service.validate_coupon_code(DEFAULT_TENANT_SLUG, issued.code, redeem=True)
        assert result.valid is False
        assert _reload(db_session, issued.id).redemptions_count == 2

    def test_expired_code_is_marked_expired(self, db_session, service, coupon):
        issued = _issue(service, coupon, expires_at=datetime.now(UTC) - timedelta(minutes=1))
        result = service.validate_coupon_code(DEFAULT_TENANT_SLUG, issued.code, redeem=True)
        assert result.valid is False
        assert result.error == "Coupon has expired"
        assert result.message == "This coupon has expired"
        stored = _reload(db_session, issued.id)
        assert stored.status == "expired"
        assert stored.redemptions_count == 0

    def test_expired_status_without_date(self, service, coupon):
        issued = _issue(service, coupon)
        service.update_issued_coupon(
            DEFAULT_TENANT_SLUG, issued.id, IssuedCouponUpdate(status=IssuedCouponStatus.EXPIRED)
        )
        result = service.validate_coupon_code(DEFAULT_TENANT_SLUG, issued.code)
        assert result.error == "Coupon has expired"

    @pytest.mark.parametrize(
        ("status", "error", "message"),
        [
            (
                IssuedCouponStatus.REVOKED,
                "Coupon has been revoked",
                "This coupon has been revoked",
            ),
            (
                IssuedCouponStatus.CANCELLED,
                "Coupon has been cancelled",
                "This coupon has been cancelled",
            ),
        ],
    )
    def test_terminal_status_rejected(self, db_session, service, coupon, status, error, message):
        issued = _issue(service, coupon)
        service.update_issued_coupon(
            DEFAULT_TENANT_SLUG, issued.id, IssuedCouponUpdate(status=status)
        )
        result = service.validate_coupon_code(DEFAULT_TENANT_SLUG, issued.code, redeem=True)
        assert result.valid is False
        assert result.error == error
        assert result.message == message
        assert _reload(db_session, issued.id).redemptions_count == 0

    def test_lost_redeem_race(self, db_session, service, coupon):
        issued = _issue(service, coupon)
        with patch.object(IssuedCouponRepository, "redeem", return_value=0):
            result = service.validate_coupon_code(DEFAULT_TENANT_SLUG, issued.code, redeem=True)
        assert result.valid is False
        assert result.error == "Coupon has reached maximum redemptions"
        assert _reload(db_session, issued.id).redemptions_count == 0

    def test_customer_already_redeemed_elsewhere(self, service, coupon):
        issued = _issue(service, coupon, email="jane@acme.io")
        with patch.object(IssuedCouponRepository, "has_other_fully_redeemed", return_value=True):
            result = service.validate_coupon_code(DEFAULT_TENANT_SLUG, issued.code, redeem=True)
        assert result.valid is False
        assert result.error == "This customer has already redeemed this coupon"
        assert result.message == (
            "You cannot redeem the same coupon multiple times for the same customer"
        )

    def test_anonymous_code_skips_customer_check(self, service, coupon):
        issued = _issue(service, coupon)
        with patch.object(
            IssuedCouponRepository, "has_other_fully_redeemed", return_value=True
        ) as check:
            result = service.validate_coupon_code(DEFAULT_TENANT_SLUG, issued.code, redeem=True)
        assert result.valid is True
        check.assert_not_called()


class TestVisitorChecks:
    def test_survey_completion(self, service, coupon):
        result = service.has_completed_survey_for_tenant(DEFAULT_TENANT_SLUG, "jane@acme.io")
        assert result.completed is False
        _issue(service, coupon, email="jane@acme.io")
        result = service.has_completed_survey_for_tenant(DEFAULT_TENANT_SLUG, "Jane@Acme.io")
        assert result.completed is True

    def test_already_redeemed(self, service, coupon):
        check = service.is_coupon_already_redeemed
        assert check(DEFAULT_TENANT_SLUG, coupon.id, "jane@acme.io").redeemed is False
        issued = _issue(service, coupon, email="jane@acme.io")
        assert check(DEFAULT_TENANT_SLUG, coupon.id, "jane@acme.io").redeemed is False
        service.validate_coupon_code(DEFAULT_TENANT_SLUG, issued.code, redeem=True)
        assert check(DEFAULT_TENANT_SLUG, coupon.id, "jane@acme.io").redeemed is True

    def test_status_labels(self, service, coupon):
        status = service.get_coupon_status
        assert status(DEFAULT_TENANT_SLUG, coupon.id, "jane@acme.io").status is None

        issued = _issue(service, coupon, email="jane@acme.io")
        assert status(DEFAULT_TENANT_SLUG, coupon.id, "jane@acme.io").status is None

        service.validate_coupon_code(DEFAULT_TENANT_SLUG, issued.code, redeem=True)
        assert status(DEFAULT_TENANT_SLUG, coupon.id, "jane@acme.io").status == "redeemed"

        service.update_issued_coupon(
            DEFAULT_TENANT_SLUG, issued.id, IssuedCouponUpdate(status=IssuedCouponStatus.REVOKED)
        )
        assert status(DEFAULT_TENANT_SLUG, coupon.id, "jane@acme.io").status == "revoked"

    def test_revoked_wins_over_redeemed_count(self, service, coupon):
        issued = _issue(service, coupon, email="jane@acme.io")
        service.update_issued_coupon(
            DEFAULT_TENANT_SLUG,
            issued.id,
            IssuedCouponUpdate(status=IssuedCouponStatus.REVOKED, redemptions_count=1),
        )
        result = service.get_coupon_status(DEFAULT_TENANT_SLUG, coupon.id, "jane@acme.io")
        assert result.status == "revoked"

    def test_check_existing_coupon(self, service, coupon):
        result = service.check_existing_coupon(DEFAULT_TENANT_SLUG, coupon.id, "jane@acme.io")
        assert result.exists is False
        assert result.issued_coupon is None

        issued = _issue(service, coupon, email="jane@acme.io")
        service.validate_coupon_code(DEFAULT_TENANT_SLUG, issued.code, redeem=True)
        result = service.check_existing_coupon(DEFAULT_TENANT_SLUG, coupon.id, "jane@acme.io")
        assert result.exists is True
        assert result.issued_coupon.code == issued.code

    def test_check_existing_coupon_is_rate_limited(self, service, coupon):
        for _ in range(settings.RATE_LIMIT_COUPON_CHECK_MAX):
            service.check_existing_coupon(
                DEFAULT_TENANT_SLUG, coupon.id, "jane@acme.io", client="ip:1"
            )
        result = service.check_existing_coupon(
            DEFAULT_TENANT_SLUG, coupon.id, "jane@acme.io", client="ip:1"
        )
        assert result.error_kind == ErrorKind.RATE_LIMITED
        assert result.error.startswith("Too many coupon check requests")


class TestAdminOperations:
    def test_pagination(self, service, coupon):
        for _ in range(3):
            _issue(service, coupon)

        first = service.get_issued_coupons_paginated(DEFAULT_TENANT_SLUG, page=1, items_per_page=2)
        assert first.ok
        assert first.total_count == 3
        assert first.total_pages == 2
        assert len(first.issued_coupons) == 2
        assert all(row.coupon_title == "Free coffee" for row in first.issued_coupons)

        second = service.get_issued_coupons_paginated(DEFAULT_TENANT_SLUG, page=2, items_per_page=2)
        assert len(second.issued_coupons) == 1

    def test_pagination_empty(self, service):
        result = service.get_issued_coupons_paginated(DEFAULT_TENANT_SLUG)
        assert result.issued_coupons == []
        assert result.total_count == 0
        assert result.total_pages == 0

    def test_pagination_rejects_bad_page(self, service):
        result = service.get_issued_coupons_paginated(DEFAULT_TENANT_SLUG, page=0)
        assert result.error_kind == ErrorKind.VALIDATION

    def test_update_is_applied_literally(self, db_session, service, double_coupon):
        issued = _issue(service, double_coupon)
        result = service.update_issued_coupon(
            DEFAULT_TENANT_SLUG,
            issued.id,
            IssuedCouponUpdate(redemptions_count=2, metadata={"note": "manual"}),
        )
        assert result.success is True
        stored = _reload(db_session, issued.id)
        assert stored.redemptions_count == 2
        assert stored.status == "issued"
        assert stored.metadata_ == {"note": "manual"}

    def test_update_stamps_revoked_at(self, db_session, service, coupon):
        issued = _issue(service, coupon)
        service.update_issued_coupon(
            DEFAULT_TENANT_SLUG, issued.id, IssuedCouponUpdate(status=IssuedCouponStatus.REVOKED)
        )
        stored = _reload(db_session, issued.id)
        assert stored.status == "revoked"
        assert stored.revoked_at is not None

    def test_update_stamps_redeemed_at(self, db_session, service, coupon):
        issued = _issue(service, coupon)
        service.update_issued_coupon(
            DEFAULT_TENANT_SLUG, issued.id, IssuedCouponUpdate(status=IssuedCouponStatus.REDEEMED)
        )
        assert _reload(db_session, issued.id).redeemed_at is not None

    def test_update_count_out_of_range(self, service, coupon):
        issued = _issue(service, coupon)
        result = service.update_issued_coupon(
            DEFAULT_TENANT_SLUG, issued.id, IssuedCouponUpdate(redemptions_count=5)
        )
        assert result.success is False
        assert result.error == "Redemptions count must be between 0 and 1"
        assert result.error_kind == ErrorKind.VALIDATION

    def test_update_unknown_coupon_is_blocked(self, service):
        result = service.update_issued_coupon(
            DEFAULT_TENANT_SLUG,
            uuid.uuid4(),
            IssuedCouponUpdate(status=IssuedCouponStatus.REVOKED),
        )
        assert result.success is False
        assert result.error == "Update blocked - no rows were updated"
        assert result.error_kind == ErrorKind.AUTHORIZATION_BLOCKED

    def test_update_other_tenant_coupon_is_blocked(self, db_session, service, coupon):
        issued = _issue(service, coupon)
        db_session.add(Tenant(id=uuid.uuid4(), slug="globex", name="Globex", active=True))
        db_session.commit()
        result = service.update_issued_coupon(
            "globex", issued.id, IssuedCouponUpdate(status=IssuedCouponStatus.REVOKED)
        )
        assert result.error_kind == ErrorKind.AUTHORIZATION_BLOCKED
        assert _reload(db_session, issued.id).status == "issued"

    def test_update_with_no_rows_updated(self, service, coupon):
        issued = _issue(service, coupon)
        with patch.object(IssuedCouponRepository, "update_fields", return_value=0):
            result = service.update_issued_coupon(
                DEFAULT_TENANT_SLUG,
                issued.id,
                IssuedCouponUpdate(status=IssuedCouponStatus.REVOKED),
            )
        assert result.error == "Update blocked - no rows were updated"

    def test_adjust_redemptions(self, db_session, service, double_coupon):
        issued = _issue(service, double_coupon)

        service.adjust_redemptions(DEFAULT_TENANT_SLUG, issued.id, 1)
        stored = _reload(db_session, issued.id)
        assert (stored.redemptions_count, stored.status) == (1, "issued")

        service.adjust_redemptions(DEFAULT_TENANT_SLUG, issued.id, 5)
        stored = _reload(db_session, issued.id)
        assert (stored.redemptions_count, stored.status) == (2, "redeemed")

        service.adjust_redemptions(DEFAULT_TENANT_SLUG, issued.id, -1)
        stored = _reload(db_session, issued.id)
        assert (stored.redemptions_count, stored.status) == (1, "issued")

        service.adjust_redemptions(DEFAULT_TENANT_SLUG, issued.id, -10)
        assert _reload(db_session, issued.id).redemptions_count == 0

    def test_record_engagement(self, db_session, service, coupon):
        issued = _issue(service, coupon)
        result = service.record_engagement(DEFAULT_TENANT_SLUG, issued.id, "wallet_added")
        assert result.success is True
        service.record_engagement(DEFAULT_TENANT_SLUG, issued.id, "code_copied")
        metadata = _reload(db_session, issued.id).metadata_
        assert metadata["wallet_added"] is True
        assert metadata["code_copied"] is True
        assert "wallet_added_at" in metadata

    def test_record_engagement_unknown_coupon(self, service):
        result = service.record_engagement(DEFAULT_TENANT_SLUG, uuid.uuid4(), "downloaded")
        assert result.success is False
        assert result.error == "Issued coupon not found"
        assert result.error_kind == ErrorKind.NOT_FOUND
