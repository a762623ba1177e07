"""User endpoints: signup alias, current user and admin management."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from nest_auth.api.deps import get_auth_service, get_user_service
from nest_auth.api.guards import API_KEY_ONLY, WEB_ADMIN, WEB_SESSION, Principal, protect
from nest_auth.schemas.auth import UserRegister
from nest_auth.schemas.user import DeleteUserResponse, UserResponse, UserUpdate
from nest_auth.services.auth import AuthService
from nest_auth.services.users import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    description="Same as registration: creates an inactive account pending email verification.",
    dependencies=[Depends(protect(API_KEY_ONLY))],
)
async def create_user(
    data: UserRegister,
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    user = await auth_service.register(email=data.email, password=data.password)
    return UserResponse.model_validate(user)


@router.get(
    "",
    response_model=list[UserResponse],
    summary="List users",
    dependencies=[Depends(protect(WEB_ADMIN))],
)
async def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    user_service: UserService = Depends(get_user_service),
) -> list[UserResponse]:
    users = await user_service.list_users(skip, limit)
    return [UserResponse.model_validate(user) for user in users]


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
)
async def get_me(
    principal: Principal = Depends(protect(WEB_SESSION)),
) -> UserResponse:
    return UserResponse.model_validate(principal.user)


@router.patch(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update user",
    dependencies=[Depends(protect(WEB_ADMIN))],
)
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    user_service: UserService = Depends(get_user_service),
) -> UserResponse:
    """
    Update a user's email, password, role or active flag.

    Raises:
        404: User not found
        409: Email already registered
    """
    user = await user_service.update_user(
        user_id, data.model_dump(exclude_unset=True, exclude_none=True)
    )
    return UserResponse.model_validate(user)


@router.delete(
    "/{user_id}",
    response_model=DeleteUserResponse,
    summary="Delete user",
    description="Soft delete by default; `hard=true` removes the row and its details and keys.",
    dependencies=[Depends(protect(WEB_ADMIN))],
)
async def delete_user(
    user_id: UUID,
    hard: bool = Query(False),
    user_service: UserService = Depends(get_user_service),
) -> DeleteUserResponse:
    user = await user_service.delete_user(user_id, hard=hard)
    return DeleteUserResponse(
        success=True,
        message="User permanently deleted" if hard else "User deleted",
        hard=hard,
        user=UserResponse.model_validate(user),
    )
