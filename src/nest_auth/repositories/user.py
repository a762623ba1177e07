"""User repository: credential store queries with soft-delete semantics."""
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nest_auth.core.security import hash_password, hash_refresh_token, verify_refresh_token
from nest_auth.models.base import utcnow
from nest_auth.models.user import EMPTY_PASSWORD, User, UserRole
from nest_auth.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User model; every lookup ignores soft-deleted rows."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, User)

    async def get_by_id(self, id: UUID) -> User | None:
        result = await self.db.execute(
            select(User).where(User.id == id, User.is_deleted.is_(False))
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        """Find a non-deleted user by email address (used for login)."""
        result = await self.db.execute(
            select(User).where(User.email == email, User.is_deleted.is_(False))
        )
        return result.scalar_one_or_none()

    async def email_exists(self, email: str) -> bool:
        """Check if email belongs to a non-deleted user."""
        result = await self.db.execute(
            select(User.id).where(User.email == email, User.is_deleted.is_(False))
        )
        return result.scalar_one_or_none() is not None

    async def get_all(self, skip: int = 0, limit: int = 100) -> list[User]:
        return await super().get_all(skip, limit, User.is_deleted.is_(False))

    async def create_user(
        self,
        email: str,
        password: str,
        role: UserRole = UserRole.USER,
        is_oauth: bool = False,
    ) -> User:
        """
        Create a user with a hashed password.

        Args:
            email: Email address
            password: Plain password; empty for OAuth-only accounts
            role: User role
            is_oauth: OAuth users are activated immediately

        Returns:
            Created user
        """
        user = User(
            email=email,
            password=hash_password(password) if password else EMPTY_PASSWORD,
            role=role,
            is_active=is_oauth,
        )
        return await self.create(user)

    async def get_or_create(self, email: str, password: str, is_oauth: bool = False) -> User:
        """Return the non-deleted user with this email, creating it if absent."""
        existing = await self.get_by_email(email)
        if existing is not None:
            return existing
        return await self.create_user(email, password, is_oauth=is_oauth)

    async def update_user(self, user_id: UUID, data: dict) -> User | None:
        """
        Update a non-deleted user; ``password`` and ``refresh_token`` values
        are hashed before they are stored.
        """
        data = dict(data)
        if data.get("password"):
            data["password"] = hash_password(data["password"])
        if data.get("refresh_token"):
            data["refresh_token"] = hash_refresh_token(data["refresh_token"])
        return await self.update(user_id, data)

    async def set_refresh_token(self, user_id: UUID, refresh_token: str | None) -> None:
        """
        Overwrite the stored refresh-token hash.

        Storing a new hash invalidates every earlier refresh token of the
        user; ``None`` revokes them all (logout). Concurrent rotations resolve
        last-write-wins.
        """
        value = hash_refresh_token(refresh_token) if refresh_token else None
        await self.update(user_id, {"refresh_token": value})

    @staticmethod
    def validate_refresh_token(user: User, refresh_token: str) -> bool:
        """Check a presented refresh token against the stored hash."""
        if not user.refresh_token:
            return False
        return verify_refresh_token(refresh_token, user.refresh_token)

    async def soft_delete(self, user_id: UUID) -> User | None:
        """Mark the user deleted; the email becomes reusable."""
        now = utcnow()
        return await self.update(
            user_id,
            {"is_deleted": True, "deleted_at": now, "refresh_token": None},
        )

    async def hard_delete(self, user_id: UUID) -> User | None:
        """Physically remove the user row (details and keys cascade)."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            return None
        await self.db.delete(user)
        await self.db.commit()
        return user
