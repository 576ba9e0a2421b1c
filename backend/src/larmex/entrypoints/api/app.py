"""FastAPI application definition."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from larmex import __version__

from .deps import lifespan, settings
from .routes import api_router

app = FastAPI(
    title="larmex",
    description="Larmex Hub password recovery",
    version=__version__,
    lifespan=lifespan,
    redirect_slashes=False,
)

# Only the site serving the reset page calls this API
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.site_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
