"""API version 1 routes."""

from fastapi import APIRouter

from nest_auth.api.v1 import api_keys, auth, service, user_details, users

router = APIRouter(prefix="/api/v1")

# Include routers
router.include_router(auth.router)
router.include_router(user_details.router)
router.include_router(users.router)
router.include_router(api_keys.router)
router.include_router(service.router)
