"""Endpoints for service-to-service callers holding an issued API key."""

from fastapi import APIRouter, Depends

from nest_auth.api.guards import SERVICE_KEY, Principal, protect
from nest_auth.schemas.api_key import ServiceIdentity

router = APIRouter(prefix="/service", tags=["service"])


@router.get("/whoami", response_model=ServiceIdentity, summary="Identify the calling service")
async def whoami(principal: Principal = Depends(protect(SERVICE_KEY))) -> ServiceIdentity:
    api_key = principal.api_key
    return ServiceIdentity(
        api_key_id=api_key.id,
        name=api_key.name,
        client_name=api_key.client_name,
        permissions=list(api_key.permissions or []),
    )
