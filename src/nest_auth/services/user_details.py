"""User details service; every operation is scoped to the owning user."""
from uuid import UUID

from nest_auth.core.exceptions import NotFound
from nest_auth.models.user_details import UserDetails
from nest_auth.repositories.user_details import UserDetailsRepository

NULLABLE_FIELDS = frozenset({"address_line_2"})


class UserDetailsService:
    """Service layer for profile / address rows."""

    def __init__(self, details_repo: UserDetailsRepository):
        self.details_repo = details_repo

    async def create(self, user_id: UUID, data: dict) -> UserDetails:
        details = UserDetails(user_id=user_id, **data)
        return await self.details_repo.create_details(details)

    async def list_for_user(self, user_id: UUID) -> list[UserDetails]:
        return await self.details_repo.get_all_by_user(user_id)

    async def get(self, user_id: UUID, details_id: UUID) -> UserDetails:
        """
        Raises:
            NotFound: If the row is missing or owned by someone else
        """
        details = await self.details_repo.get_for_user(user_id, details_id)
        if details is None:
            raise NotFound("User details not found")
        return details

    async def get_default(self, user_id: UUID) -> UserDetails:
        details = await self.details_repo.get_default(user_id)
        if details is None:
            raise NotFound("Default user details not found")
        return details

    async def update(self, user_id: UUID, details_id: UUID, data: dict) -> UserDetails:
        details = await self.get(user_id, details_id)
        # Only the second address line may be cleared
        data = {
            key: value
            for key, value in data.items()
            if value is not None or key in NULLABLE_FIELDS
        }
        return await self.details_repo.update_details(details, data)

    async def set_default(self, user_id: UUID, details_id: UUID) -> UserDetails:
        details = await self.get(user_id, details_id)
        return await self.details_repo.set_default(details)

    async def delete(self, user_id: UUID, details_id: UUID) -> UserDetails:
        details = await self.get(user_id, details_id)
        return await self.details_repo.delete(details.id)
