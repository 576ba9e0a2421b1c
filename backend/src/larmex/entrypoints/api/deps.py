"""Dependency injection and application lifespan management."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import Depends, Request

from larmex.adapters.identity.supabase import SupabaseIdentityProvider
from larmex.core.recovery.identity import IdentityProvider
from larmex.core.recovery.request import ForgotPasswordFlow
from larmex.core.recovery.view import ResetPasswordViewRegistry

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)

IdentityFactory = Callable[[], Awaitable[IdentityProvider]]


class Settings:
    """Application settings loaded from environment."""

    def __init__(self) -> None:
        """Load settings from environment variables."""
        self.supabase_url = os.getenv("SUPABASE_URL", "http://localhost:54321")
        self.supabase_anon_key = os.getenv("SUPABASE_ANON_KEY", "")
        self.site_url = os.getenv("SITE_URL", "http://localhost:8080").rstrip("/")

        # Recovery timing, all tunable
        self.recovery_check_timeout = float(os.getenv("RECOVERY_CHECK_TIMEOUT_SECONDS", "5"))
        self.password_update_timeout = float(os.getenv("PASSWORD_UPDATE_TIMEOUT_SECONDS", "15"))
        self.resend_cooldown = int(os.getenv("RESET_RESEND_COOLDOWN_SECONDS", "60"))
        self.view_max_age = float(os.getenv("RESET_VIEW_MAX_AGE_SECONDS", "900"))

    @property
    def reset_redirect_url(self) -> str:
        """Page the emailed recovery link returns to."""
        return f"{self.site_url}/reset-password"


settings = Settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - setup and teardown.

    This context manager handles:
    - Identity provider client setup
    - Reset-password view registry
    - Per-client forgot-password flows
    """

    async def identity_factory() -> IdentityProvider:
        return await SupabaseIdentityProvider.create(
            settings.supabase_url, settings.supabase_anon_key
        )

    # Recovery emails need no session, so one client serves every request
    app.state.identity_provider = await identity_factory()
    app.state.identity_factory = identity_factory
    app.state.reset_views = ResetPasswordViewRegistry(max_age_seconds=settings.view_max_age)
    app.state.forgot_password_flows = {}

    logger.info(f"recovery_service_started: site_url={settings.site_url}")

    yield

    # Teardown - unmount any views still open
    app.state.reset_views.close_all()
    await app.state.reset_views.drain()


def get_settings() -> Settings:
    """Get application settings."""
    return settings


def get_identity_factory(request: Request) -> IdentityFactory:
    """Get the factory creating one identity client per view."""
    factory: IdentityFactory = request.app.state.identity_factory
    return factory


def get_view_registry(request: Request) -> ResetPasswordViewRegistry:
    """Get the reset-password view registry from app state."""
    registry: ResetPasswordViewRegistry = request.app.state.reset_views
    return registry


def _client_identifier(request: Request) -> str:
    client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}"


def get_forgot_password_flow(
    request: Request,
    app_settings: Settings = Depends(get_settings),
) -> ForgotPasswordFlow:
    """Get the forgot-password flow of the calling client.

    The cooldown lives in the flow, so each client keeps its own. Flows
    whose cooldown has run out hold no state worth keeping and are
    dropped whenever a new client shows up.
    """
    flows: dict[str, ForgotPasswordFlow] = request.app.state.forgot_password_flows
    identifier = _client_identifier(request)
    flow = flows.get(identifier)
    if flow is None:
        idle = [key for key, existing in flows.items() if existing.cooldown_remaining == 0]
        for key in idle:
            del flows[key]
        flow = ForgotPasswordFlow(
            request.app.state.identity_provider,
            redirect_url=app_settings.reset_redirect_url,
            cooldown_seconds=app_settings.resend_cooldown,
        )
        flows[identifier] = flow
    return flow
