"""FastAPI dependency injection for repositories, services and collaborators."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from nest_auth.core.context import RequestContext
from nest_auth.core.exceptions import Unauthenticated
from nest_auth.db.session import get_db
from nest_auth.models.user import User
from nest_auth.repositories.api_key import ApiKeyRepository
from nest_auth.repositories.user import UserRepository
from nest_auth.repositories.user_details import UserDetailsRepository
from nest_auth.services.api_keys import ApiKeyService
from nest_auth.services.auth import AuthService
from nest_auth.services.email import EmailService
from nest_auth.services.oauth import GoogleOAuthClient
from nest_auth.services.strategies import Credentials, StrategyKind, authenticate
from nest_auth.services.user_details import UserDetailsService
from nest_auth.services.users import UserService


def get_request_context(request: Request) -> RequestContext:
    """
    Get the request-scoped context created by the logging middleware.

    Falls back to a fresh context when the middleware is not installed
    (e.g. a bare router in unit tests).
    """
    context = getattr(request.state, "context", None)
    if context is None:
        context = RequestContext(method=request.method, path=request.url.path)
        request.state.context = context
    return context


async def get_user_repository(
    db: AsyncSession = Depends(get_db),
) -> UserRepository:
    return UserRepository(db)


async def get_api_key_repository(
    db: AsyncSession = Depends(get_db),
) -> ApiKeyRepository:
    return ApiKeyRepository(db)


async def get_user_details_repository(
    db: AsyncSession = Depends(get_db),
) -> UserDetailsRepository:
    return UserDetailsRepository(db)


def get_email_service() -> EmailService:
    return EmailService()


def get_oauth_client() -> GoogleOAuthClient:
    return GoogleOAuthClient()


async def get_auth_service(
    user_repo: UserRepository = Depends(get_user_repository),
    email_service: EmailService = Depends(get_email_service),
    context: RequestContext = Depends(get_request_context),
) -> AuthService:
    """
    Get authentication service instance.

    Args:
        user_repo: User repository
        email_service: Transactional email sender
        context: Request context for log correlation

    Returns:
        AuthService instance
    """
    return AuthService(user_repo, email_service=email_service, context=context)


async def get_user_service(
    user_repo: UserRepository = Depends(get_user_repository),
) -> UserService:
    return UserService(user_repo)


async def get_user_details_service(
    details_repo: UserDetailsRepository = Depends(get_user_details_repository),
) -> UserDetailsService:
    return UserDetailsService(details_repo)


async def get_api_key_service(
    api_key_repo: ApiKeyRepository = Depends(get_api_key_repository),
    context: RequestContext = Depends(get_request_context),
) -> ApiKeyService:
    return ApiKeyService(api_key_repo, context=context)


async def get_optional_user(
    request: Request,
    user_repo: UserRepository = Depends(get_user_repository),
    context: RequestContext = Depends(get_request_context),
) -> User | None:
    """
    Resolve the session user if the request carries a valid one.

    Used by routes that behave differently with and without a session
    (logout); an absent or invalid session yields None.
    """
    try:
        return await authenticate(
            StrategyKind.JWT_BEARER_OR_COOKIE,
            Credentials(cookies=request.cookies, headers=request.headers),
            user_repo,
            context=context,
        )
    except Unauthenticated:
        return None
