"""Session cookies for web clients."""

from fastapi import Response

from nest_auth.config import settings
from nest_auth.schemas.auth import TokenPair
from nest_auth.services.strategies import AUTHENTICATION_COOKIE, REFRESH_COOKIE


def _cookie_options() -> dict:
    # Cross-site frontends need SameSite=None, which browsers only accept with Secure
    if settings.is_secure_environment:
        return {"httponly": True, "secure": True, "samesite": "none", "path": "/"}
    return {"httponly": True, "secure": False, "samesite": "lax", "path": "/"}


def set_session_cookies(response: Response, tokens: TokenPair) -> None:
    options = _cookie_options()
    response.set_cookie(
        AUTHENTICATION_COOKIE,
        tokens.access_token,
        max_age=settings.jwt_access_token_expiration_time_ms // 1000,
        **options,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        tokens.refresh_token,
        max_age=settings.jwt_refresh_token_expiration_time_ms // 1000,
        **options,
    )


def clear_session_cookies(response: Response) -> None:
    options = _cookie_options()
    response.delete_cookie(AUTHENTICATION_COOKIE, **options)
    response.delete_cookie(REFRESH_COOKIE, **options)
