"""API key repository: lookups by keyed hash and owner-scoped mutations."""
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nest_auth.models.api_key import ApiKey
from nest_auth.models.base import utcnow
from nest_auth.repositories.base import BaseRepository


class ApiKeyRepository(BaseRepository[ApiKey]):
    """Repository for ApiKey model."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, ApiKey)

    async def get_by_hash(self, hashed_key: str) -> ApiKey | None:
        result = await self.db.execute(select(ApiKey).where(ApiKey.key == hashed_key))
        return result.scalar_one_or_none()

    async def get_active_by_hash(self, hashed_key: str) -> ApiKey | None:
        """Find an active key by hash; expiry is checked by the caller."""
        result = await self.db.execute(
            select(ApiKey).where(ApiKey.key == hashed_key, ApiKey.is_active.is_(True))
        )
        return result.scalar_one_or_none()

    async def get_for_owner(self, key_id: UUID, user_id: UUID) -> ApiKey | None:
        """Get a key only if the user issued it."""
        result = await self.db.execute(
            select(ApiKey).where(ApiKey.id == key_id, ApiKey.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_all_by_owner(self, user_id: UUID) -> list[ApiKey]:
        result = await self.db.execute(
            select(ApiKey)
            .where(ApiKey.user_id == user_id)
            .order_by(ApiKey.created_at.desc())
        )
        return list(result.scalars().all())

    async def touch_last_used(self, api_key: ApiKey) -> None:
        api_key.last_used_at = utcnow()
        await self.db.commit()

    async def deactivate(self, key_id: UUID) -> ApiKey | None:
        return await self.update(key_id, {"is_active": False})
