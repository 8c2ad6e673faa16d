"""API v1 routes."""

from fastapi import APIRouter

from userservice.api.v1 import auth, friends, health, users

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(friends.router, prefix="/users", tags=["friends"])
