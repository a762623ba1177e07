"""Route protection: per-route guard configuration and the guard runner.

A route declares its ``RouteProtection`` when it is registered::

    @router.get("/me")
    async def me(principal: Principal = Depends(protect(API_KEY_AND_SESSION))):
        ...

Guards run in declared order and the first failure short-circuits the
request. The role check runs last.
"""

import enum
from dataclasses import dataclass

from fastapi import Depends, Request

from nest_auth.api.deps import get_api_key_service, get_request_context, get_user_repository
from nest_auth.config import settings
from nest_auth.core.context import RequestContext
from nest_auth.core.exceptions import Forbidden, Unauthenticated
from nest_auth.core.security import constant_time_equals
from nest_auth.models.api_key import ApiKey
from nest_auth.models.user import User, UserRole
from nest_auth.repositories.user import UserRepository
from nest_auth.services.api_keys import ApiKeyService
from nest_auth.services.strategies import Credentials, StrategyKind, authenticate


class GuardKind(str, enum.Enum):
    STATIC_API_KEY = "static-api-key"
    DYNAMIC_API_KEY = "dynamic-api-key"
    USER_SESSION = "user-session"


@dataclass(frozen=True)
class RouteProtection:
    """Admission requirements of one route.

    Attributes:
        guards: Guards to run, in order
        roles: If non-empty, the session user must hold one of these roles
        session_strategy: JWT strategy the user-session guard delegates to
        oauth_entry: Route starts or completes an OAuth redirect and cannot
            carry a pre-shared key; the static API-key guard lets it through
    """

    guards: tuple[GuardKind, ...] = ()
    roles: tuple[UserRole, ...] = ()
    session_strategy: StrategyKind = StrategyKind.JWT_BEARER_OR_COOKIE
    oauth_entry: bool = False


@dataclass
class Principal:
    """Identities resolved for a request."""

    user: User | None = None
    api_key: ApiKey | None = None


def check_static_api_key(protection: RouteProtection, presented: str | None) -> None:
    if protection.oauth_entry:
        return
    if not presented or not constant_time_equals(presented, settings.api_key):
        raise Unauthenticated("Invalid API key")


def check_roles(required: tuple[UserRole, ...], user: User | None) -> None:
    """
    Require the session user to hold one of ``required``.

    A principal without a role is Forbidden, never silently allowed.
    """
    if not required:
        return
    role = getattr(user, "role", None)
    if role is None:
        raise Forbidden("User has no role assigned")
    if role not in required:
        raise Forbidden("Insufficient role")


async def run_guards(
    protection: RouteProtection,
    request: Request,
    user_repo: UserRepository,
    api_key_service: ApiKeyService,
    context: RequestContext | None = None,
) -> Principal:
    """Evaluate ``protection`` against ``request`` and return the principal."""
    principal = Principal()
    presented_key = request.headers.get(settings.api_key_header)

    for kind in protection.guards:
        if kind is GuardKind.STATIC_API_KEY:
            check_static_api_key(protection, presented_key)
        elif kind is GuardKind.DYNAMIC_API_KEY:
            principal.api_key = await api_key_service.validate(presented_key)
        elif kind is GuardKind.USER_SESSION:
            principal.user = await authenticate(
                protection.session_strategy,
                Credentials(cookies=request.cookies, headers=request.headers),
                user_repo,
                context=context,
            )
        else:
            raise ValueError(f"Unknown guard: {kind}")

    check_roles(protection.roles, principal.user)

    if principal.user is not None:
        request.state.user = principal.user
        if context is not None:
            context.user_id = str(principal.user.id)
    return principal


def protect(protection: RouteProtection):
    """Build the FastAPI dependency enforcing ``protection``."""
    async def dependency(
        request: Request,
        user_repo: UserRepository = Depends(get_user_repository),
        api_key_service: ApiKeyService = Depends(get_api_key_service),
        context: RequestContext = Depends(get_request_context),
    ) -> Principal:
        return await run_guards(protection, request, user_repo, api_key_service, context)

    return dependency


# Protections shared by the routers
API_KEY_ONLY = RouteProtection(guards=(GuardKind.STATIC_API_KEY,))
OAUTH_ENTRY = RouteProtection(guards=(GuardKind.STATIC_API_KEY,), oauth_entry=True)
API_KEY_AND_SESSION = RouteProtection(
    guards=(GuardKind.STATIC_API_KEY, GuardKind.USER_SESSION)
)
# Browser-only routes read the session from the Authentication cookie
WEB_SESSION = RouteProtection(
    guards=(GuardKind.STATIC_API_KEY, GuardKind.USER_SESSION),
    session_strategy=StrategyKind.JWT_COOKIE,
)
WEB_ADMIN = RouteProtection(
    guards=(GuardKind.STATIC_API_KEY, GuardKind.USER_SESSION),
    roles=(UserRole.ADMIN,),
    session_strategy=StrategyKind.JWT_COOKIE,
)
WEB_ACCOUNT_HOLDER = RouteProtection(
    guards=(GuardKind.STATIC_API_KEY, GuardKind.USER_SESSION),
    roles=(UserRole.ADMIN, UserRole.USER),
    session_strategy=StrategyKind.JWT_COOKIE,
)
SERVICE_KEY = RouteProtection(guards=(GuardKind.DYNAMIC_API_KEY,))
