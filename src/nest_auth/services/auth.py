"""Authentication service: session issuing and account flows."""

from datetime import timedelta
from urllib.parse import quote
from uuid import UUID

from jose import JWTError

from nest_auth.config import settings
from nest_auth.core.context import RequestContext, get_logger
from nest_auth.core.exceptions import Conflict, Forbidden, Unauthenticated
from nest_auth.core.security import (
    AUTH_REDIRECT,
    EMAIL_VERIFICATION,
    PASSWORD_RESET,
    create_access_token,
    create_purpose_token,
    create_refresh_token,
    decode_purpose_token,
    password_fingerprint,
    verify_password,
)
from nest_auth.models.user import User, UserRole
from nest_auth.repositories.user import UserRepository
from nest_auth.schemas.auth import TokenPair
from nest_auth.services.email import EmailService
from nest_auth.services.strategies import (
    Credentials,
    StrategyKind,
    authenticate,
)

PASSWORD_RESET_SENT = "The password reset link has been sent."


class AuthService:
    """Service for authentication operations."""

    def __init__(
        self,
        user_repo: UserRepository,
        email_service: EmailService | None = None,
        context: RequestContext | None = None,
    ):
        """
        Initialize authentication service.

        Args:
            user_repo: User repository for database operations
            email_service: Transactional email sender
            context: Request context used to tag log records
        """
        self.user_repo = user_repo
        self.email_service = email_service or EmailService()
        self.context = context
        self.logger = get_logger(__name__, context)

    # Session issuing

    def issue_access_token(self, user_id: UUID) -> str:
        return create_access_token(user_id)

    async def issue_refresh_token(self, user_id: UUID) -> str:
        """
        Mint a refresh token and make it the user's only valid one.

        The stored hash is overwritten, so every earlier refresh token of the
        user stops validating.
        """
        refresh_token = create_refresh_token(user_id)
        await self.user_repo.set_refresh_token(user_id, refresh_token)
        return refresh_token

    async def issue_tokens(self, user: User) -> TokenPair:
        access_token = self.issue_access_token(user.id)
        refresh_token = await self.issue_refresh_token(user.id)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    # Account flows

    async def register(self, email: str, password: str) -> User:
        """
        Register a new, inactive user and email a verification link.

        Raises:
            Conflict: If an active account already uses this email
        """
        existing = await self.user_repo.get_by_email(email)
        if existing is not None:
            if existing.is_active:
                raise Conflict("User already exists and is active. Please login instead.")
            self.logger.info("Re-sending verification to unverified account")
            await self.send_verification(existing)
            return existing

        user = await self.user_repo.create_user(email, password)
        self.logger.info("User registered", extra={"user_id": str(user.id)})
        await self.send_verification(user)
        return user

    async def login(self, email: str, password: str) -> tuple[User, TokenPair]:
        """
        Authenticate with email and password and open a session.

        Raises:
            Unauthenticated: If credentials are invalid
            Forbidden: If the account is not active
        """
        user = await authenticate(
            StrategyKind.LOCAL_EMAIL,
            Credentials(email=email, password=password),
            self.user_repo,
            context=self.context,
        )
        if not user.is_active and user.role != UserRole.ADMIN:
            raise Forbidden("User account is deactivated")

        tokens = await self.issue_tokens(user)
        self.logger.info("User logged in", extra={"user_id": str(user.id)})
        return user, tokens

    async def refresh(self, refresh_token: str | None) -> tuple[User, TokenPair]:
        """
        Rotate a refresh token.

        Raises:
            Unauthenticated: If the token is invalid, expired, rotated or revoked
        """
        user = await authenticate(
            StrategyKind.JWT_REFRESH,
            Credentials(refresh_token=refresh_token),
            self.user_repo,
            context=self.context,
        )
        tokens = await self.issue_tokens(user)
        return user, tokens

    async def logout(self, user: User | None) -> None:
        """Revoke the stored refresh token so no issued one can be used again."""
        if user is not None:
            await self.user_repo.set_refresh_token(user.id, None)
            self.logger.info("User logged out", extra={"user_id": str(user.id)})

    # OAuth hand-off

    def create_oauth_redirect_token(self, user: User) -> str:
        return create_purpose_token(
            user.id,
            AUTH_REDIRECT,
            timedelta(seconds=settings.oauth_redirect_token_expire_seconds),
        )

    def oauth_redirect_url(self, user: User) -> str:
        token = self.create_oauth_redirect_token(user)
        return f"{settings.auth_ui_redirect_url}/auth-callback#token={quote(token)}"

    async def complete_oauth(self, token: str) -> tuple[User, TokenPair]:
        """Exchange a short-lived auth-redirect token for a full session."""
        try:
            payload = decode_purpose_token(token, AUTH_REDIRECT)
            user_id = payload["userId"]
            user = await self.user_repo.get_by_id(_as_uuid(user_id))
        except (JWTError, ValueError):
            raise Unauthenticated("Invalid or expired authentication token")
        if user is None:
            raise Unauthenticated("Invalid or expired authentication token")

        tokens = await self.issue_tokens(user)
        return user, tokens

    # Email verification

    def create_verification_token(self, user: User) -> str:
        return create_purpose_token(
            user.id,
            EMAIL_VERIFICATION,
            timedelta(hours=settings.email_verification_token_expire_hours),
        )

    async def send_verification(self, user: User) -> bool:
        token = self.create_verification_token(user)
        link = f"{settings.auth_ui_redirect_url}/verify-email#token={quote(token)}"
        return await self.email_service.send_verification_email(user.email, link)

    async def verify_email(self, token: str) -> str:
        try:
            payload = decode_purpose_token(token, EMAIL_VERIFICATION)
            user = await self.user_repo.get_by_id(_as_uuid(payload["userId"]))
        except (JWTError, ValueError):
            raise Unauthenticated("Invalid or expired verification token")
        if user is None:
            raise Unauthenticated("Invalid or expired verification token")

        if not user.is_active:
            await self.user_repo.update(user.id, {"is_active": True})
        return "Email has been successfully verified"

    # Passwords

    def create_password_reset_token(self, user: User) -> str:
        return create_purpose_token(
            user.id,
            PASSWORD_RESET,
            timedelta(minutes=settings.password_reset_token_expire_minutes),
            pwd=password_fingerprint(user.password),
        )

    async def forgot_password(self, email: str) -> str:
        """Email a reset link; the reply never reveals whether the email exists."""
        user = await self.user_repo.get_by_email(email)
        if user is None:
            self.logger.info("Password reset requested for unknown email")
            return PASSWORD_RESET_SENT

        token = self.create_password_reset_token(user)
        link = f"{settings.auth_ui_redirect_url}/reset-password#token={quote(token)}"
        await self.email_service.send_forgot_password_email(user.email, link)
        return PASSWORD_RESET_SENT

    async def reset_password(self, token: str, new_password: str) -> str:
        """
        Set a new password from a reset token.

        The token embeds a fingerprint of the password hash it was issued
        against, so it is single-use.
        """
        try:
            payload = decode_purpose_token(token, PASSWORD_RESET)
            user = await self.user_repo.get_by_id(_as_uuid(payload["userId"]))
        except (JWTError, ValueError):
            raise Unauthenticated("Invalid or expired password reset token")
        if user is None or payload.get("pwd") != password_fingerprint(user.password):
            raise Unauthenticated("Invalid or expired password reset token")

        await self.user_repo.update_user(user.id, {"password": new_password, "refresh_token": None})
        self.logger.info("Password reset", extra={"user_id": str(user.id)})
        return "Password has been successfully reset"

    async def change_password(self, user: User, current_password: str, new_password: str) -> str:
        if not verify_password(current_password, user.password):
            raise Unauthenticated("Current password is incorrect")

        await self.user_repo.update_user(user.id, {"password": new_password})
        self.logger.info("Password changed", extra={"user_id": str(user.id)})
        return "Password changed successfully"


def _as_uuid(value) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))
