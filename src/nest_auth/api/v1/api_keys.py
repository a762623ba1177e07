"""API key management endpoints for the session user."""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from nest_auth.api.deps import get_api_key_service
from nest_auth.api.guards import API_KEY_AND_SESSION, Principal, protect
from nest_auth.models.api_key import ApiKey
from nest_auth.schemas.api_key import ApiKeyCreate, ApiKeyResponse, ApiKeyWithSecret
from nest_auth.services.api_keys import ApiKeyService

router = APIRouter(prefix="/api-keys", tags=["api keys"])

session_user = protect(API_KEY_AND_SESSION)


def _with_secret(api_key: ApiKey, secret: str) -> ApiKeyWithSecret:
    return ApiKeyWithSecret(
        **ApiKeyResponse.model_validate(api_key).model_dump(),
        api_key=secret,
    )


@router.post(
    "",
    response_model=ApiKeyWithSecret,
    status_code=status.HTTP_201_CREATED,
    summary="Create API key",
    description="The plaintext key is returned in this response only.",
)
async def create_api_key(
    data: ApiKeyCreate,
    principal: Principal = Depends(session_user),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiKeyWithSecret:
    api_key, secret = await service.create(
        principal.user.id,
        name=data.name,
        client_name=data.client_name,
        description=data.description,
        expires_at=data.expires_at,
        permissions=data.permissions,
    )
    return _with_secret(api_key, secret)


@router.get("", response_model=list[ApiKeyResponse], summary="List own API keys")
async def list_api_keys(
    principal: Principal = Depends(session_user),
    service: ApiKeyService = Depends(get_api_key_service),
) -> list[ApiKeyResponse]:
    keys = await service.list_for_owner(principal.user.id)
    return [ApiKeyResponse.model_validate(key) for key in keys]


@router.get("/{key_id}", response_model=ApiKeyResponse, summary="Get API key")
async def get_api_key(
    key_id: UUID,
    principal: Principal = Depends(session_user),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiKeyResponse:
    """
    Raises:
        404: Key does not exist or belongs to another user
    """
    api_key = await service.get_for_owner(key_id, principal.user.id)
    return ApiKeyResponse.model_validate(api_key)


@router.put(
    "/{key_id}/regenerate",
    response_model=ApiKeyWithSecret,
    summary="Regenerate API key",
    description="Issues a new secret; the previous one stops working immediately.",
)
async def regenerate_api_key(
    key_id: UUID,
    principal: Principal = Depends(session_user),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiKeyWithSecret:
    api_key, secret = await service.regenerate(key_id, principal.user.id)
    return _with_secret(api_key, secret)


@router.put("/{key_id}/deactivate", response_model=ApiKeyResponse, summary="Deactivate API key")
async def deactivate_api_key(
    key_id: UUID,
    principal: Principal = Depends(session_user),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiKeyResponse:
    api_key = await service.deactivate(key_id, principal.user.id)
    return ApiKeyResponse.model_validate(api_key)


@router.delete("/{key_id}", response_model=ApiKeyResponse, summary="Delete API key")
async def delete_api_key(
    key_id: UUID,
    principal: Principal = Depends(session_user),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiKeyResponse:
    api_key = await service.delete(key_id, principal.user.id)
    return ApiKeyResponse.model_validate(api_key)
