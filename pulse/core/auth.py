from collections.abc import Callable
from datetime import UTC, datetime

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from pulse.core.database import get_db
from pulse.core.errors import TenantNotFoundError
from pulse.core.tenant import TenantContext, TenantResolver
from pulse.models.staff import MANAGER_ROLES, StaffMember, StaffRole
from pulse.repositories.api_key_repository import ApiKeyRepository, hash_api_key


def get_tenant_context(slug: str, db: Session = Depends(get_db)) -> TenantContext:
    """Resolve the ``{slug}`` path parameter of a public route to an active tenant."""
    try:
        return TenantResolver(db).context(slug)
    except TenantNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from None


def get_current_staff(
    request: Request,
    db: Session = Depends(get_db),
) -> StaffMember:
    """Authenticate a staff member from the bearer API key in the Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(status_code=401, detail="API key is required")

    if not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    raw_key = auth_header[7:]
    if not raw_key:
        raise HTTPException(status_code=401, detail="API key is required")

    repo = ApiKeyRepository(db)
    api_key = repo.get_by_hash(hash_api_key(raw_key))

    if not api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")

    if api_key.status == "revoked":
        raise HTTPException(status_code=401, detail="API key has been revoked")

    if api_key.expires_at and api_key.expires_at.replace(tzinfo=None) < datetime.now(UTC).replace(
        tzinfo=None
    ):
        raise HTTPException(status_code=401, detail="API key has expired")

    staff = db.query(StaffMember).filter(StaffMember.id == api_key.staff_id).first()
    if not staff:
        raise HTTPException(status_code=401, detail="Invalid API key")

    repo.update_last_used(api_key, datetime.now(UTC))
    return staff


def get_admin_context(
    slug: str,
    staff: StaffMember = Depends(get_current_staff),
    db: Session = Depends(get_db),
) -> TenantContext:
    """Resolve the admin route's tenant and check the caller belongs to it.

    Deactivated tenants still resolve here so their staff keep access.
    """
    try:
        ctx = TenantResolver(db).context(slug, include_inactive=True)
    except TenantNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from None

    if staff.tenant_id != ctx.tenant_id:
        raise HTTPException(status_code=403, detail="Not a member of this tenant")
    return ctx


def require_roles(*roles: StaffRole) -> Callable[..., TenantContext]:
    """Build a dependency that only lets the given staff roles through."""

    def dependency(
        ctx: TenantContext = Depends(get_admin_context),
        staff: StaffMember = Depends(get_current_staff),
    ) -> TenantContext:
        if StaffRole(staff.role) not in roles:
            raise HTTPException(status_code=403, detail="Insufficient role for this action")
        return ctx

    return dependency


# Owners and admins manage tenant configuration; any staff member can redeem
require_manager = require_roles(*MANAGER_ROLES)
require_staff = require_roles(*StaffRole)
