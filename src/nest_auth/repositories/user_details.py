"""User details repository; keeps at most one default row per user."""
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from nest_auth.models.user_details import UserDetails
from nest_auth.repositories.base import BaseRepository


class UserDetailsRepository(BaseRepository[UserDetails]):
    """Repository for UserDetails rows, always scoped by owner."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, UserDetails)

    async def get_for_user(self, user_id: UUID, details_id: UUID) -> UserDetails | None:
        """Get a details row only if it belongs to the user."""
        result = await self.db.execute(
            select(UserDetails).where(
                UserDetails.id == details_id, UserDetails.user_id == user_id
            )
        )
        return result.scalar_one_or_none()

    async def get_all_by_user(self, user_id: UUID) -> list[UserDetails]:
        result = await self.db.execute(
            select(UserDetails)
            .where(UserDetails.user_id == user_id)
            .order_by(UserDetails.created_at)
        )
        return list(result.scalars().all())

    async def get_default(self, user_id: UUID) -> UserDetails | None:
        result = await self.db.execute(
            select(UserDetails).where(
                UserDetails.user_id == user_id, UserDetails.is_default.is_(True)
            )
        )
        return result.scalar_one_or_none()

    async def _clear_default(self, user_id: UUID, keep_id: UUID | None = None) -> None:
        stmt = (
            update(UserDetails)
            .where(UserDetails.user_id == user_id, UserDetails.is_default.is_(True))
            .values(is_default=False)
            .execution_options(synchronize_session="fetch")
        )
        if keep_id is not None:
            stmt = stmt.where(UserDetails.id != keep_id)
        await self.db.execute(stmt)
        await self.db.flush()

    async def create_details(self, details: UserDetails) -> UserDetails:
        """Insert a details row; a new default unsets the previous one."""
        if details.is_default:
            await self._clear_default(details.user_id)
        return await self.create(details)

    async def update_details(self, details: UserDetails, data: dict) -> UserDetails:
        """Apply changes to an owned row, moving the default flag if requested."""
        if data.get("is_default") is True:
            await self._clear_default(details.user_id, keep_id=details.id)

        for key, value in data.items():
            if hasattr(details, key):
                setattr(details, key, value)

        await self.db.commit()
        await self.db.refresh(details)
        return details

    async def set_default(self, details: UserDetails) -> UserDetails:
        return await self.update_details(details, {"is_default": True})
