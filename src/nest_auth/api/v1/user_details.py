"""Profile / address endpoints scoped to the session user."""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from nest_auth.api.deps import get_user_details_service
from nest_auth.api.guards import WEB_ACCOUNT_HOLDER, Principal, protect
from nest_auth.schemas.user_details import (
    UserDetailsCreate,
    UserDetailsResponse,
    UserDetailsUpdate,
)
from nest_auth.services.user_details import UserDetailsService

router = APIRouter(prefix="/users/me/details", tags=["user details"])

account_holder = protect(WEB_ACCOUNT_HOLDER)


@router.post(
    "",
    response_model=UserDetailsResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add user details",
)
async def create_details(
    data: UserDetailsCreate,
    principal: Principal = Depends(account_holder),
    service: UserDetailsService = Depends(get_user_details_service),
) -> UserDetailsResponse:
    """A new default row unsets the previous default."""
    details = await service.create(principal.user.id, data.model_dump())
    return UserDetailsResponse.model_validate(details)


@router.get("", response_model=list[UserDetailsResponse], summary="List user details")
async def list_details(
    principal: Principal = Depends(account_holder),
    service: UserDetailsService = Depends(get_user_details_service),
) -> list[UserDetailsResponse]:
    rows = await service.list_for_user(principal.user.id)
    return [UserDetailsResponse.model_validate(row) for row in rows]


@router.get("/default", response_model=UserDetailsResponse, summary="Get default details")
async def get_default_details(
    principal: Principal = Depends(account_holder),
    service: UserDetailsService = Depends(get_user_details_service),
) -> UserDetailsResponse:
    details = await service.get_default(principal.user.id)
    return UserDetailsResponse.model_validate(details)


@router.get("/{details_id}", response_model=UserDetailsResponse, summary="Get user details")
async def get_details(
    details_id: UUID,
    principal: Principal = Depends(account_holder),
    service: UserDetailsService = Depends(get_user_details_service),
) -> UserDetailsResponse:
    details = await service.get(principal.user.id, details_id)
    return UserDetailsResponse.model_validate(details)


@router.patch("/{details_id}", response_model=UserDetailsResponse, summary="Update user details")
async def update_details(
    details_id: UUID,
    data: UserDetailsUpdate,
    principal: Principal = Depends(account_holder),
    service: UserDetailsService = Depends(get_user_details_service),
) -> UserDetailsResponse:
    details = await service.update(
        principal.user.id, details_id, data.model_dump(exclude_unset=True)
    )
    return UserDetailsResponse.model_validate(details)


@router.patch(
    "/{details_id}/set-default",
    response_model=UserDetailsResponse,
    summary="Make details the default",
)
async def set_default_details(
    details_id: UUID,
    principal: Principal = Depends(account_holder),
    service: UserDetailsService = Depends(get_user_details_service),
) -> UserDetailsResponse:
    details = await service.set_default(principal.user.id, details_id)
    return UserDetailsResponse.model_validate(details)


@router.delete("/{details_id}", response_model=UserDetailsResponse, summary="Delete user details")
async def delete_details(
    details_id: UUID,
    principal: Principal = Depends(account_holder),
    service: UserDetailsService = Depends(get_user_details_service),
) -> UserDetailsResponse:
    details = await service.delete(principal.user.id, details_id)
    return UserDetailsResponse.model_validate(details)
