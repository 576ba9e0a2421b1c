"""API route modules."""

from fastapi import APIRouter

from larmex.entrypoints.api.routes.password_reset import router as password_reset_router

# Create main API router
api_router = APIRouter()

# Include all route modules
api_router.include_router(password_reset_router)

__all__ = ["api_router"]
