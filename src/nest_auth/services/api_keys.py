"""API key manager: issue, validate, regenerate and revoke service keys."""
from datetime import datetime
from uuid import UUID

from nest_auth.core.context import RequestContext, get_logger
from nest_auth.core.exceptions import NotFound, Unauthenticated
from nest_auth.core.security import generate_api_key, hash_api_key
from nest_auth.models.api_key import ApiKey
from nest_auth.models.base import as_utc, utcnow
from nest_auth.repositories.api_key import ApiKeyRepository

INVALID_API_KEY = "Invalid API key"


class ApiKeyService:
    """Service layer for API keys.

    Only the keyed hash of a secret is stored. Mutations check ownership and
    report foreign keys as NotFound so key ids cannot be probed.
    """

    def __init__(self, api_key_repo: ApiKeyRepository, context: RequestContext | None = None):
        self.api_key_repo = api_key_repo
        self.logger = get_logger(__name__, context)

    async def create(
        self,
        owner_id: UUID,
        name: str,
        client_name: str,
        description: str | None = None,
        expires_at: datetime | None = None,
        permissions: list[str] | None = None,
    ) -> tuple[ApiKey, str]:
        """
        Issue a new key.

        Returns:
            The stored record and the plaintext secret (shown only once)
        """
        secret = generate_api_key()
        api_key = ApiKey(
            name=name,
            description=description,
            client_name=client_name,
            key=hash_api_key(secret),
            expires_at=as_utc(expires_at),
            permissions=list(permissions or []),
            user_id=owner_id,
        )
        created = await self.api_key_repo.create(api_key)
        self.logger.info("API key created", extra={"api_key_id": str(created.id)})
        return created, secret

    @staticmethod
    def is_usable(api_key: ApiKey, now: datetime | None = None) -> bool:
        """Active and not past ``expires_at``."""
        if not api_key.is_active:
            return False
        expires_at = as_utc(api_key.expires_at)
        return expires_at is None or expires_at > (now or utcnow())

    async def validate(self, presented_key: str | None) -> ApiKey:
        """
        Resolve a presented secret to its active, unexpired record.

        ``last_used_at`` is updated on success; a failure to record it does
        not fail the request.

        Raises:
            Unauthenticated: On unknown, inactive or expired keys
        """
        if not presented_key:
            raise Unauthenticated("API key missing")

        api_key = await self.api_key_repo.get_active_by_hash(hash_api_key(presented_key))
        if api_key is None or not self.is_usable(api_key):
            raise Unauthenticated(INVALID_API_KEY)

        api_key_id = api_key.id
        try:
            await self.api_key_repo.touch_last_used(api_key)
        except Exception as exc:
            # Rollback expires the record; reload it so callers can still read it
            await self.api_key_repo.db.rollback()
            await self.api_key_repo.db.refresh(api_key)
            self.logger.warning(
                "Could not record API key usage",
                extra={"api_key_id": str(api_key_id), "error_type": type(exc).__name__},
            )
        return api_key

    async def list_for_owner(self, owner_id: UUID) -> list[ApiKey]:
        return await self.api_key_repo.get_all_by_owner(owner_id)

    async def get_for_owner(self, key_id: UUID, owner_id: UUID) -> ApiKey:
        api_key = await self.api_key_repo.get_for_owner(key_id, owner_id)
        if api_key is None:
            raise NotFound("API key not found")
        return api_key

    async def regenerate(self, key_id: UUID, owner_id: UUID) -> tuple[ApiKey, str]:
        """Replace the secret; the previous one stops validating immediately."""
        api_key = await self.get_for_owner(key_id, owner_id)
        secret = generate_api_key()
        updated = await self.api_key_repo.update(api_key.id, {"key": hash_api_key(secret)})
        self.logger.info("API key regenerated", extra={"api_key_id": str(api_key.id)})
        return updated, secret

    async def deactivate(self, key_id: UUID, owner_id: UUID) -> ApiKey:
        api_key = await self.get_for_owner(key_id, owner_id)
        updated = await self.api_key_repo.deactivate(api_key.id)
        self.logger.info("API key deactivated", extra={"api_key_id": str(api_key.id)})
        return updated

    async def delete(self, key_id: UUID, owner_id: UUID) -> ApiKey:
        api_key = await self.get_for_owner(key_id, owner_id)
        deleted = await self.api_key_repo.delete(api_key.id)
        self.logger.info("API key deleted", extra={"api_key_id": str(api_key.id)})
        return deleted
