"""Shared test fixtures for all test modules."""

import contextlib
import uuid

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pulse.core import database as db_module
from pulse.core.database import Base
from pulse.core.rate_limiter import rate_limiters
from pulse.models.tenant import Tenant

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)

# Well-known default tenant used across all tests
DEFAULT_TENANT_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
DEFAULT_TENANT_SLUG = "acme"


def _seed_default_tenant(session: Session) -> None:
    """Insert the default tenant used by all tests."""
    tenant = session.query(Tenant).filter(Tenant.id == DEFAULT_TENANT_ID).first()
    if tenant is None:
        tenant = Tenant(
            id=DEFAULT_TENANT_ID,
            slug=DEFAULT_TENANT_SLUG,
            name="Acme Coffee",
            active=True,
        )
        session.add(tenant)
        session.commit()


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database. Clears data after each test.
    """
    # Patch module-level engine and session factory
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    # Seed default tenant so all tests can reference it
    session = _TestSessionLocal()
    try:
        _seed_default_tenant(session)
    finally:
        session.close()

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    # Restore originals
    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Start every test with empty rate-limit counters."""
    rate_limiters.reset()
    yield
    rate_limiters.reset()


@pytest.fixture
def default_tenant_id():
    """Return the default tenant ID for tests."""
    return DEFAULT_TENANT_ID


@pytest.fixture
def staff_client():
    """Factory returning a TestClient authenticated as a new staff member.

    Usage: ``staff_client(role=StaffRole.ADMIN, tenant_id=...)``.
    """
    from fastapi.testclient import TestClient

    from pulse.main import app
    from pulse.models.staff import StaffMember, StaffRole
    from pulse.repositories.api_key_repository import ApiKeyRepository

    session = _TestSessionLocal()

    def _make(role: StaffRole = StaffRole.OWNER, tenant_id: uuid.UUID = DEFAULT_TENANT_ID):
        staff = StaffMember(
            tenant_id=tenant_id,
            email=f"{role.value}-{uuid.uuid4().hex[:8]}@acme.io",
            role=role.value,
        )
        session.add(staff)
        session.commit()
        session.refresh(staff)
        _, raw_key = ApiKeyRepository(session).create(tenant_id, staff.id, name="Test Key")
        client = TestClient(app)
        client.headers["Authorization"] = f"Bearer {raw_key}"
        return client

    yield _make
    session.close()
