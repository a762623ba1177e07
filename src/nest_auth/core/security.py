"""Security utilities for hashing secrets and JWT token management."""

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from jose import JWTError, jwt
from passlib.context import CryptContext

from nest_auth.config import settings

# Salted hashing with Argon2 for passwords and stored refresh tokens
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

ACCESS = "access"
REFRESH = "refresh"

# Purposes of short-lived one-off tokens
AUTH_REDIRECT = "auth-redirect"
PASSWORD_RESET = "password-reset"
EMAIL_VERIFICATION = "email-verification"

API_KEY_PREFIX = "nak_"


def hash_password(password: str) -> str:
    """
    Hash a secret using Argon2 with a random per-call salt.

    Args:
        password: Plain text secret

    Returns:
        Self-describing hash string
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """
    Verify a secret against its hash.

    An empty or missing digest never verifies; this keeps OAuth-only
    accounts (empty password sentinel) out of the password flow.

    Args:
        plain_password: Secret to verify
        hashed_password: Stored hash

    Returns:
        True if the secret matches, False otherwise
    """
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Malformed or unknown hash format
        return False


# Refresh tokens are stored with the same salted scheme as passwords
hash_refresh_token = hash_password
verify_refresh_token = verify_password


def generate_api_key() -> str:
    """Generate a high-entropy API key secret."""
    return API_KEY_PREFIX + secrets.token_hex(32)


def hash_api_key(api_key: str) -> str:
    """
    Deterministically hash an API key for indexed lookup.

    HMAC-SHA256 keyed with a server secret: equal inputs give equal digests,
    so a presented key can be found with a single equality query.

    Args:
        api_key: Plain API key

    Returns:
        Hex digest
    """
    return hmac.new(
        settings.api_key_hash_secret.encode("utf-8"),
        api_key.encode("utf-8"),
        digestmod=hashlib.sha256,
    ).hexdigest()


def constant_time_equals(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def _encode(claims: dict[str, Any], secret: str, expires_delta: timedelta) -> str:
    to_encode = dict(claims)
    to_encode["exp"] = datetime.now(timezone.utc) + expires_delta
    return jwt.encode(to_encode, secret, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: UUID, expires_delta: timedelta | None = None) -> str:
    """
    Create a short-lived JWT access token.

    Args:
        user_id: User ID to encode in token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(milliseconds=settings.jwt_access_token_expiration_time_ms)
    return _encode(
        {"userId": str(user_id), "type": ACCESS},
        settings.jwt_access_token_secret,
        expires_delta,
    )


def create_refresh_token(user_id: UUID, expires_delta: timedelta | None = None) -> str:
    """
    Create a long-lived JWT refresh token.

    Each token carries a random ``jti`` so two tokens minted within the same
    second are still distinct.

    Args:
        user_id: User ID to encode in token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT refresh token string
    """
    if expires_delta is None:
        expires_delta = timedelta(milliseconds=settings.jwt_refresh_token_expiration_time_ms)
    return _encode(
        {"userId": str(user_id), "type": REFRESH, "jti": secrets.token_hex(16)},
        settings.jwt_refresh_token_secret,
        expires_delta,
    )


def create_purpose_token(
    user_id: UUID,
    purpose: str,
    expires_delta: timedelta,
    **extra: Any,
) -> str:
    """Create a short-lived one-off token bound to a single purpose."""
    claims = {"userId": str(user_id), "purpose": purpose, **extra}
    return _encode(claims, settings.jwt_access_token_secret, expires_delta)


def decode_token(token: str, secret: str | None = None) -> dict[str, Any]:
    """
    Decode and verify a JWT token.

    Args:
        token: JWT token string
        secret: Signing secret, defaults to the access-token secret

    Returns:
        Decoded token payload

    Raises:
        JWTError: If token is invalid or expired
    """
    return jwt.decode(
        token,
        secret or settings.jwt_access_token_secret,
        algorithms=[settings.jwt_algorithm],
    )


def get_user_id_from_token(
    token: str,
    secret: str | None = None,
    token_type: str | None = None,
) -> UUID:
    """
    Extract user ID from a JWT token.

    Args:
        token: JWT token string
        secret: Signing secret, defaults to the access-token secret
        token_type: When given, the ``type`` claim must match

    Returns:
        User ID as UUID

    Raises:
        JWTError: If token is invalid, expired or of the wrong type
        ValueError: If user ID is not a valid UUID
    """
    payload = decode_token(token, secret)
    if token_type is not None and payload.get("type") != token_type:
        raise JWTError("Unexpected token type")
    user_id_str = payload.get("userId")
    if user_id_str is None:
        raise JWTError("Token missing 'userId' claim")
    return UUID(user_id_str)


def decode_purpose_token(token: str, purpose: str) -> dict[str, Any]:
    """
    Decode a one-off token and check its purpose.

    Raises:
        JWTError: If token is invalid, expired or for another purpose
    """
    payload = decode_token(token)
    if payload.get("purpose") != purpose or "userId" not in payload:
        raise JWTError("Invalid token purpose")
    return payload


def password_fingerprint(password_hash: str | None) -> str:
    """
    Short digest of the current password hash.

    Embedded in password-reset tokens so a token stops working once the
    password it was issued against has changed.
    """
    return hashlib.sha256((password_hash or "").encode("utf-8")).hexdigest()[:16]
