"""Credential verification strategies.

Each strategy turns one kind of credential into a resolved ``User`` or
raises ``Unauthenticated``. The set is closed: ``StrategyKind`` enumerates
every variant and ``authenticate`` selects one with an explicit switch.
"""

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from uuid import UUID

from jose import JWTError

from nest_auth.config import settings
from nest_auth.core.context import RequestContext, get_logger
from nest_auth.core.exceptions import Unauthenticated
from nest_auth.core.security import ACCESS, REFRESH, get_user_id_from_token, verify_password
from nest_auth.models.user import EMPTY_PASSWORD, User, UserRole
from nest_auth.repositories.user import UserRepository
from nest_auth.services.oauth import GoogleOAuthClient

AUTHENTICATION_COOKIE = "Authentication"
REFRESH_COOKIE = "Refresh"

INVALID_CREDENTIALS = "Invalid credentials"


class StrategyKind(str, enum.Enum):
    LOCAL_EMAIL = "local-email"
    JWT_COOKIE = "jwt-cookie"
    JWT_BEARER_OR_COOKIE = "jwt-bearer-or-cookie"
    JWT_REFRESH = "jwt-refresh"
    GOOGLE_OAUTH = "google-oauth"


@dataclass
class Credentials:
    """Raw credential material a strategy may read from."""

    email: str | None = None
    password: str | None = None
    cookies: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    refresh_token: str | None = None
    code: str | None = None


def extract_cookie_token(cookies: Mapping[str, str], name: str = AUTHENTICATION_COOKIE) -> str | None:
    token = cookies.get(name)
    return token or None


def extract_bearer_token(headers: Mapping[str, str]) -> str | None:
    """Return the token of an ``Authorization: Bearer <token>`` header."""
    authorization = headers.get("authorization") or headers.get("Authorization")
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def resolve_session_user(user_repo: UserRepository, user_id: UUID) -> User:
    """
    Load the user a token points at.

    Missing users surface as Unauthenticated; inactive accounts cannot hold a
    session unless they are admins.
    """
    user = await user_repo.get_by_id(user_id)
    if user is None:
        raise Unauthenticated("Could not validate credentials")
    if not user.is_active and user.role != UserRole.ADMIN:
        raise Unauthenticated("User account is inactive")
    return user


async def authenticate_email_password(
    user_repo: UserRepository,
    email: str | None,
    password: str | None,
    context: RequestContext | None = None,
) -> User:
    """
    Email/password strategy.

    Does not check ``is_active``; the caller decides. Unknown email and wrong
    password fail with the same message.
    """
    logger = get_logger(__name__, context)
    if not email or not password:
        raise Unauthenticated("Please provide email and password")

    user = await user_repo.get_by_email(email)
    if user is None or user.password == EMPTY_PASSWORD:
        logger.info("Password login rejected: unknown account or OAuth-only account")
        raise Unauthenticated(INVALID_CREDENTIALS)

    if not verify_password(password, user.password):
        logger.info("Password login rejected: password mismatch", extra={"user_id": str(user.id)})
        raise Unauthenticated(INVALID_CREDENTIALS)

    return user


async def authenticate_access_token(user_repo: UserRepository, token: str | None) -> User:
    """Verify a signed access token and resolve its user."""
    if not token:
        raise Unauthenticated("Authentication token missing")
    try:
        user_id = get_user_id_from_token(
            token, settings.jwt_access_token_secret, token_type=ACCESS
        )
    except (JWTError, ValueError):
        raise Unauthenticated("Could not validate credentials")
    return await resolve_session_user(user_repo, user_id)


async def authenticate_jwt_cookie(user_repo: UserRepository, cookies: Mapping[str, str]) -> User:
    """JWT from the ``Authentication`` cookie (web clients)."""
    return await authenticate_access_token(user_repo, extract_cookie_token(cookies))


async def authenticate_jwt_bearer_or_cookie(
    user_repo: UserRepository,
    cookies: Mapping[str, str],
    headers: Mapping[str, str],
) -> User:
    """Cookie first, then ``Authorization: Bearer`` (mobile clients)."""
    token = extract_cookie_token(cookies) or extract_bearer_token(headers)
    return await authenticate_access_token(user_repo, token)


async def authenticate_refresh_token(
    user_repo: UserRepository,
    refresh_token: str | None,
    context: RequestContext | None = None,
) -> User:
    """
    Refresh-token strategy.

    A valid signature is not enough: the token must also match the hash
    stored for the user, so rotated or logged-out tokens are rejected.
    """
    logger = get_logger(__name__, context)
    if not refresh_token:
        raise Unauthenticated("Refresh token missing")
    try:
        user_id = get_user_id_from_token(
            refresh_token, settings.jwt_refresh_token_secret, token_type=REFRESH
        )
    except (JWTError, ValueError):
        raise Unauthenticated("Invalid or expired refresh token")

    user = await user_repo.get_by_id(user_id)
    if user is None or not user_repo.validate_refresh_token(user, refresh_token):
        logger.info("Refresh token rejected")
        raise Unauthenticated("Invalid or expired refresh token")
    if not user.is_active and user.role != UserRole.ADMIN:
        raise Unauthenticated("Invalid or expired refresh token")
    return user


async def authenticate_google(
    user_repo: UserRepository,
    oauth_client: GoogleOAuthClient,
    code: str | None,
    context: RequestContext | None = None,
) -> User:
    """
    Google OAuth strategy: exchange the code, then resolve or create the user.

    The first email entry is used whether or not Google marks it verified.
    New accounts are active with the empty password sentinel.
    """
    logger = get_logger(__name__, context)
    if not code:
        raise Unauthenticated("Authorization code missing")

    profile = await oauth_client.exchange_code(code)
    email = profile.first_email
    if not email:
        logger.warning("Google profile has no email entry", extra={"provider_id": profile.provider_id})
        raise Unauthenticated("Google account has no email address")

    user = await user_repo.get_or_create(email, EMPTY_PASSWORD, is_oauth=True)
    if not user.is_active:
        # An unverified password signup proved ownership through Google
        user = await user_repo.update(user.id, {"is_active": True})
    return user


async def authenticate(
    kind: StrategyKind,
    credentials: Credentials,
    user_repo: UserRepository,
    oauth_client: GoogleOAuthClient | None = None,
    context: RequestContext | None = None,
) -> User:
    """Run the strategy named by ``kind`` against ``credentials``."""
    if kind is StrategyKind.LOCAL_EMAIL:
        return await authenticate_email_password(
            user_repo, credentials.email, credentials.password, context
        )
    if kind is StrategyKind.JWT_COOKIE:
        return await authenticate_jwt_cookie(user_repo, credentials.cookies)
    if kind is StrategyKind.JWT_BEARER_OR_COOKIE:
        return await authenticate_jwt_bearer_or_cookie(
            user_repo, credentials.cookies, credentials.headers
        )
    if kind is StrategyKind.JWT_REFRESH:
        token = credentials.refresh_token or extract_cookie_token(credentials.cookies, REFRESH_COOKIE)
        return await authenticate_refresh_token(user_repo, token, context)
    if kind is StrategyKind.GOOGLE_OAUTH:
        if oauth_client is None:
            raise ValueError("Google strategy requires an OAuth client")
        return await authenticate_google(user_repo, oauth_client, credentials.code, context)
    raise ValueError(f"Unknown strategy: {kind}")
