import hashlib
import secrets
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from pulse.core.config import settings
from pulse.models.api_key import ApiKey


def generate_api_key() -> str:
    """Generate a random staff API key carrying the configured prefix."""
    return settings.API_KEY_PREFIX + secrets.token_hex(32)


def hash_api_key(raw_key: str) -> str:
    """SHA-256 hash of the raw API key."""
    return hashlib.sha256(raw_key.encode()).hexdigest()


class ApiKeyRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        tenant_id: UUID,
        staff_id: UUID,
        name: str | None = None,
        expires_at: datetime | None = None,
    ) -> tuple[ApiKey, str]:
        """Create a new API key. Returns (api_key_model, raw_key)."""
        raw_key = generate_api_key()
        api_key = ApiKey(
            tenant_id=tenant_id,
            staff_id=staff_id,
            key_hash=hash_api_key(raw_key),
            key_prefix=raw_key[:12],
            name=name,
            expires_at=expires_at,
        )
        self.db.add(api_key)
        self.db.commit()
        self.db.refresh(api_key)
        return api_key, raw_key

    def get_by_hash(self, key_hash: str) -> ApiKey | None:
        return self.db.query(ApiKey).filter(ApiKey.key_hash == key_hash).first()

    def revoke(self, api_key_id: UUID, tenant_id: UUID) -> ApiKey | None:
        api_key = (
            self.db.query(ApiKey)
            .filter(ApiKey.id == api_key_id, ApiKey.tenant_id == tenant_id)
            .first()
        )
        if not api_key:
            return None
        api_key.status = "revoked"  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(api_key)
        return api_key

    def update_last_used(self, api_key: ApiKey, now: datetime) -> None:
        api_key.last_used_at = now  # type: ignore[assignment]
        self.db.commit()
