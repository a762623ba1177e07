"""Authentication endpoints: sessions, OAuth hand-off, passwords, verification."""

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import RedirectResponse

from nest_auth.api.cookies import clear_session_cookies, set_session_cookies
from nest_auth.api.deps import get_auth_service, get_oauth_client, get_optional_user
from nest_auth.api.guards import API_KEY_AND_SESSION, API_KEY_ONLY, OAUTH_ENTRY, Principal, protect
from nest_auth.models.user import User
from nest_auth.schemas.auth import (
    ChangePasswordRequest,
    CompleteOAuthRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RefreshRequest,
    ResetPasswordRequest,
    TokenPair,
    UserRegister,
    VerifyEmailRequest,
)
from nest_auth.schemas.user import UserResponse
from nest_auth.services.auth import AuthService
from nest_auth.services.oauth import GoogleOAuthClient
from nest_auth.services.strategies import (
    REFRESH_COOKIE,
    Credentials,
    StrategyKind,
    authenticate,
)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    description="Create an inactive account and email a verification link.",
    dependencies=[Depends(protect(API_KEY_ONLY))],
)
async def register(
    data: UserRegister,
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """
    Register a new user account.

    Raises:
        409: An active account already uses this email
        400: Validation error
    """
    user = await auth_service.register(email=data.email, password=data.password)
    return UserResponse.model_validate(user)


@router.post(
    "/login/email",
    response_model=TokenPair,
    summary="Email login",
    description="Authenticate with email and password; sets session cookies.",
    dependencies=[Depends(protect(API_KEY_ONLY))],
)
async def login_email(
    data: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenPair:
    """
    Authenticate user and open a session.

    Raises:
        401: Invalid credentials
        403: Account not verified or deactivated
    """
    _, tokens = await auth_service.login(email=data.email, password=data.password)
    set_session_cookies(response, tokens)
    return tokens


@router.post(
    "/refresh",
    response_model=TokenPair,
    summary="Refresh tokens",
    description="Rotate the refresh token (from the Refresh cookie or the body).",
    dependencies=[Depends(protect(API_KEY_ONLY))],
)
async def refresh(
    request: Request,
    response: Response,
    data: RefreshRequest | None = None,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenPair:
    """
    Exchange a refresh token for a new token pair.

    Raises:
        401: Token invalid, expired, already rotated or revoked
    """
    presented = (data.refresh_token if data else None) or request.cookies.get(REFRESH_COOKIE)
    _, tokens = await auth_service.refresh(presented)
    set_session_cookies(response, tokens)
    return tokens


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
    description="Revoke the stored refresh token and clear session cookies.",
    dependencies=[Depends(protect(API_KEY_ONLY))],
)
async def logout(
    response: Response,
    user: User | None = Depends(get_optional_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth_service.logout(user)
    clear_session_cookies(response)
    return MessageResponse(message="Logged out")


@router.get(
    "/google/login",
    summary="Start Google login",
    status_code=status.HTTP_302_FOUND,
    dependencies=[Depends(protect(OAUTH_ENTRY))],
)
async def google_login(
    oauth_client: GoogleOAuthClient = Depends(get_oauth_client),
) -> RedirectResponse:
    return RedirectResponse(oauth_client.authorization_url(), status_code=status.HTTP_302_FOUND)


@router.get(
    "/google/callback",
    summary="Google OAuth callback",
    status_code=status.HTTP_302_FOUND,
    dependencies=[Depends(protect(OAUTH_ENTRY))],
)
async def google_callback(
    code: str | None = None,
    auth_service: AuthService = Depends(get_auth_service),
    oauth_client: GoogleOAuthClient = Depends(get_oauth_client),
) -> RedirectResponse:
    """
    Resolve or create the user from the Google profile, then redirect to the
    frontend with a short-lived token in the URL fragment.

    Raises:
        401: Code missing or rejected by Google
    """
    user = await authenticate(
        StrategyKind.GOOGLE_OAUTH,
        Credentials(code=code),
        auth_service.user_repo,
        oauth_client=oauth_client,
        context=auth_service.context,
    )
    return RedirectResponse(auth_service.oauth_redirect_url(user), status_code=status.HTTP_302_FOUND)


@router.post(
    "/complete-oauth",
    response_model=TokenPair,
    summary="Complete OAuth login",
    description="Exchange the auth-redirect token for a session.",
    dependencies=[Depends(protect(API_KEY_ONLY))],
)
async def complete_oauth(
    data: CompleteOAuthRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenPair:
    _, tokens = await auth_service.complete_oauth(data.token)
    set_session_cookies(response, tokens)
    return tokens


@router.post(
    "/password/forgot",
    response_model=MessageResponse,
    summary="Request password reset",
    dependencies=[Depends(protect(API_KEY_ONLY))],
)
async def forgot_password(
    data: ForgotPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Always answers the same, whether or not the email is registered."""
    message = await auth_service.forgot_password(data.email)
    return MessageResponse(message=message)


@router.post(
    "/password/reset",
    response_model=MessageResponse,
    summary="Reset password",
    dependencies=[Depends(protect(API_KEY_ONLY))],
)
async def reset_password(
    data: ResetPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    message = await auth_service.reset_password(data.token, data.password)
    return MessageResponse(message=message)


@router.post(
    "/password/change",
    response_model=MessageResponse,
    summary="Change password",
)
async def change_password(
    data: ChangePasswordRequest,
    principal: Principal = Depends(protect(API_KEY_AND_SESSION)),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    message = await auth_service.change_password(
        principal.user, data.current_password, data.new_password
    )
    return MessageResponse(message=message)


@router.post(
    "/email/verify",
    response_model=MessageResponse,
    summary="Verify email",
    dependencies=[Depends(protect(API_KEY_ONLY))],
)
async def verify_email(
    data: VerifyEmailRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    message = await auth_service.verify_email(data.token)
    return MessageResponse(message=message)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
)
async def get_me(
    principal: Principal = Depends(protect(API_KEY_AND_SESSION)),
) -> UserResponse:
    return UserResponse.model_validate(principal.user)
