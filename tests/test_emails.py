"""Email opt-in tests: submission, verification and the admin mailing list."""

import pytest
from fastapi.testclient import TestClient

from pulse.core.config import settings
from pulse.core.database import get_db
from pulse.core.errors import ErrorKind
from pulse.main import app
from pulse.models.email_opt_in import EmailOptIn
from pulse.models.staff import StaffRole
from pulse.services.email_service import EmailService
from tests.conftest import DEFAULT_TENANT_SLUG

BASE = f"/v1/tenants/{DEFAULT_TENANT_SLUG}"


@pytest.fixture
def db_session():
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


class TestEmailService:
    def test_submit(self, db_session):
        result = EmailService(db_session).submit_email(DEFAULT_TENANT_SLUG, "  jane@acme.io ")
        assert result.success is True
        assert result.message is None
        assert db_session.query(EmailOptIn).one().email == "jane@acme.io"

    def test_submit_twice(self, db_session):
        service = EmailService(db_session)
        service.submit_email(DEFAULT_TENANT_SLUG, "jane@acme.io")
        result = service.submit_email(DEFAULT_TENANT_SLUG, "jane@acme.io")
        assert result.success is True
        assert result.message == "Email already registered"
        assert db_session.query(EmailOptIn).count() == 1

    @pytest.mark.parametrize("email", ["", "   ", "jane.acme.io"])
    def test_invalid_email(self, db_session, email):
        result = EmailService(db_session).submit_email(DEFAULT_TENANT_SLUG, email)
        assert result.success is False
        assert result.error == "Invalid email address"
        assert result.error_kind == ErrorKind.VALIDATION

    def test_unknown_tenant(self, db_session):
        result = EmailService(db_session).submit_email("nope", "jane@acme.io")
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_verify(self, db_session):
        service = EmailService(db_session)
        result = service.verify_email_opt_in(DEFAULT_TENANT_SLUG, "jane@acme.io")
        assert result.valid is False
        assert result.error == "Email not found in opt-in list"
        assert result.error_kind is None

        service.submit_email(DEFAULT_TENANT_SLUG, "jane@acme.io")
        assert service.verify_email_opt_in(DEFAULT_TENANT_SLUG, " jane@acme.io").valid is True

    def test_opt_in_has_its_own_budget(self, db_session):
        service = EmailService(db_session)
        for n in range(settings.RATE_LIMIT_EMAIL_OPT_IN_MAX):
            assert service.submit_email_opt_in(DEFAULT_TENANT_SLUG, f"v{n}@acme.io", "ip:1").ok
        result = service.submit_email_opt_in(DEFAULT_TENANT_SLUG, "late@acme.io", "ip:1")
        assert result.error_kind == ErrorKind.RATE_LIMITED
        assert result.error.startswith("Too many email opt-in requests")


class TestEmailAPI:
    def test_submit(self, client):
        response = client.post(f"{BASE}/emails", json={"email": "jane@acme.io"})
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": None, "error": None}

    def test_submit_invalid(self, client):
        response = client.post(f"{BASE}/emails", json={"email": "nope"})
        assert response.status_code == 422
        assert response.json()["error"] == "Invalid email address"

    def test_submit_rate_limited(self, client):
        for _ in range(settings.RATE_LIMIT_EMAIL_SUBMIT_MAX):
            client.post(f"{BASE}/emails", json={"email": "jane@acme.io"})
        response = client.post(f"{BASE}/emails", json={"email": "jane@acme.io"})
        assert response.status_code == 429
        assert "Retry-After" in response.headers

    def test_opt_in_and_verify(self, client):
        response = client.post(f"{BASE}/emails/opt_in", json={"email": "jane@acme.io"})
        assert response.json()["success"] is True
        verify = client.get(f"{BASE}/emails/verify", params={"email": "jane@acme.io"})
        assert verify.status_code == 200
        assert verify.json() == {"valid": True, "error": None}

    def test_verify_unknown(self, client):
        verify = client.get(f"{BASE}/emails/verify", params={"email": "ghost@acme.io"})
        assert verify.status_code == 200
        assert verify.json()["valid"] is False

    def test_admin_list(self, client, staff_client):
        client.post(f"{BASE}/emails", json={"email": "a@acme.io"})
        client.post(f"{BASE}/emails", json={"email": "b@acme.io"})
        response = staff_client(role=StaffRole.ADMIN).get(f"{BASE}/admin/emails")
        assert response.status_code == 200
        assert response.headers["X-Total-Count"] == "2"
        assert {row["email"] for row in response.json()} == {"a@acme.io", "b@acme.io"}

    def test_admin_list_requires_manager(self, staff_client):
        response = staff_client(role=StaffRole.STAFF).get(f"{BASE}/admin/emails")
        assert response.status_code == 403
