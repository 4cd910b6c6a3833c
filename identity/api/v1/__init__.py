"""API v1 routes."""

from fastapi import APIRouter

from identity.api.v1 import auth, health, users

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(users.roles_router, prefix="/roles", tags=["roles"])
