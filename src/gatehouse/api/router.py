"""Main API router that aggregates all route modules."""

from fastapi import APIRouter

from gatehouse.api import auth, health, profiles

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(profiles.router, prefix="/auth/userprofile", tags=["profiles"])
