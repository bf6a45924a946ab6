from fastapi import APIRouter

from .routes import (
    admin,
    auth,
    health,
    points,
    profile,
    rewards,
    verification,
)

api_router = APIRouter()

# Health check
api_router.include_router(health.router, tags=["health"])

# Identity
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(verification.router, prefix="/verification", tags=["verification"])

# Customer-facing endpoints
api_router.include_router(profile.router, prefix="/profile", tags=["profile"])
api_router.include_router(points.router, prefix="/points", tags=["points"])
api_router.include_router(rewards.router, prefix="/rewards", tags=["rewards"])

# Admin
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
