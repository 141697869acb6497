"""Tenant resolution and tenant-scoped data access."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Query, Session

from pulse.core.errors import TenantNotFoundError
from pulse.models.tenant import Tenant


@dataclass(frozen=True)
class TenantContext:
    """A resolved tenant bound to a database session.

    Every query built through ``query`` is filtered to the tenant, and every
    object passed to ``add`` is stamped with it. Repositories receive this
    value explicitly instead of reading a request-global tenant.
    """

    tenant_id: UUID
    slug: str
    db: Session

    def query(self, model: Any, *columns: Any) -> Query:  # type: ignore[type-arg]
        """Query ``model`` (or only ``columns`` of it) restricted to this tenant."""
        query = self.db.query(*columns) if columns else self.db.query(model)
        return query.filter(model.tenant_id == self.tenant_id)

    def add(self, obj: Any) -> Any:
        obj.tenant_id = self.tenant_id
        self.db.add(obj)
        return obj


class TenantResolver:
    """Maps human-readable slugs to tenants."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_slug(self, slug: str) -> Tenant | None:
        return self.db.query(Tenant).filter(Tenant.slug == slug).first()

    def resolve(self, slug: str, include_inactive: bool = False) -> Tenant:
        """Return the tenant for ``slug``.

        Inactive tenants only resolve when ``include_inactive`` is set, which is
        how admin pages keep working for a deactivated tenant.

        Raises:
            TenantNotFoundError: If the slug is unknown or the tenant is inactive.
        """
        tenant = self.get_by_slug(slug)
        if tenant is None or (not tenant.active and not include_inactive):
            raise TenantNotFoundError(slug)
        return tenant

    def context(self, slug: str, include_inactive: bool = False) -> TenantContext:
        tenant = self.resolve(slug, include_inactive=include_inactive)
        return TenantContext(tenant_id=tenant.id, slug=str(tenant.slug), db=self.db)  # type: ignore[arg-type]
