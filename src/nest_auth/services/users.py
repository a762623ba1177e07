"""User management service (admin operations)."""
from uuid import UUID

from nest_auth.core.exceptions import Conflict, NotFound
from nest_auth.models.user import User
from nest_auth.repositories.user import UserRepository


class UserService:
    """Service layer for user CRUD."""

    def __init__(self, user_repo: UserRepository):
        self.user_repo = user_repo

    async def get_user(self, user_id: UUID) -> User:
        """
        Get a non-deleted user.

        Raises:
            NotFound: If the user does not exist or was deleted
        """
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def list_users(self, skip: int = 0, limit: int = 100) -> list[User]:
        return await self.user_repo.get_all(skip, limit)

    async def update_user(self, user_id: UUID, data: dict) -> User:
        """
        Apply an admin update.

        Raises:
            NotFound: If the user does not exist
            Conflict: If the new email belongs to another non-deleted user
        """
        user = await self.get_user(user_id)
        email = data.get("email")
        if email and email != user.email and await self.user_repo.email_exists(email):
            raise Conflict("Email already registered")
        return await self.user_repo.update_user(user.id, data)

    async def delete_user(self, user_id: UUID, hard: bool = False) -> User:
        """
        Soft-delete by default; ``hard`` physically removes the row.

        The hard path also reaches rows that were already soft-deleted.
        """
        if hard:
            user = await self.user_repo.hard_delete(user_id)
            if user is None:
                raise NotFound("User not found")
            return user
        user = await self.get_user(user_id)
        return await self.user_repo.soft_delete(user.id)
