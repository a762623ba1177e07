"""User model for authentication and data ownership."""
import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nest_auth.models.base import BaseModel


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    EDITOR = "EDITOR"
    USER = "USER"


# OAuth-only accounts carry an empty password; it never verifies.
EMPTY_PASSWORD = ""


class User(BaseModel):
    """User model representing authenticated users."""

    __tablename__ = "users"
    __table_args__ = (
        # Email is unique only among non-deleted users
        Index(
            "users_email_unique_idx",
            "email",
            unique=True,
            postgresql_where=text("is_deleted = false"),
            sqlite_where=text("is_deleted = 0"),
        ),
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    password: Mapped[str] = mapped_column(Text, nullable=False, default=EMPTY_PASSWORD)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.USER,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Soft delete
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    # Relationships
    # Rely on DB-level ON DELETE CASCADE; prevent SQLAlchemy from NULLing FKs on delete.
    details: Mapped[list["UserDetails"]] = relationship(
        "UserDetails", back_populates="user", lazy="selectin", passive_deletes="all"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role}, is_active={self.is_active})>"
