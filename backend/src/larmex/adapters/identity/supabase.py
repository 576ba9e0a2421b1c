"""Supabase identity provider adapter.

Implements the IdentityProvider contract on top of the async Supabase
client. Each reset-password view gets its own client, because the client
holds the session it establishes.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from supabase import AsyncClient, AuthError, AuthSessionMissingError, acreate_client

from larmex.core.exceptions import IdentityProviderError
from larmex.core.recovery.identity import (
    SESSION_MISSING_CODE,
    AuthChangeEvent,
    AuthSession,
    AuthStateCallback,
    AuthSubscription,
    IdentityProvider,
    SignOutScope,
)

logger = structlog.get_logger()

_EVENTS = {
    "PASSWORD_RECOVERY": AuthChangeEvent.PASSWORD_RECOVERY,
    "SIGNED_IN": AuthChangeEvent.SIGNED_IN,
}


def _to_session(session: Any) -> AuthSession | None:
    if session is None:
        return None
    return AuthSession(access_token=session.access_token, refresh_token=session.refresh_token)


def _provider_error(error: Exception) -> IdentityProviderError:
    """Translate a Supabase or transport error into IdentityProviderError."""
    if isinstance(error, AuthSessionMissingError):
        return IdentityProviderError(str(error), code=SESSION_MISSING_CODE)
    if isinstance(error, AuthError):
        return IdentityProviderError(str(error), code=getattr(error, "code", None))
    return IdentityProviderError(str(error) or type(error).__name__, code="transport_error")


def _require_session(response: Any) -> AuthSession:
    session = _to_session(getattr(response, "session", None))
    if session is None:
        raise IdentityProviderError("Provider returned no session", code=SESSION_MISSING_CODE)
    return session


class SupabaseIdentityProvider:
    """Identity provider backed by Supabase Auth."""

    def __init__(self, client: AsyncClient) -> None:
        """Initialize with a Supabase async client.

        Args:
            client: Client dedicated to one view.
        """
        self._client = client

    @classmethod
    async def create(cls, supabase_url: str, supabase_key: str) -> SupabaseIdentityProvider:
        """Create a provider with a fresh client.

        Args:
            supabase_url: Project URL.
            supabase_key: Public (anon) API key.
        """
        client = await acreate_client(supabase_url, supabase_key)
        return cls(client)

    async def verify_recovery_token_hash(self, token_hash: str) -> AuthSession:
        try:
            response = await self._client.auth.verify_otp(
                {"token_hash": token_hash, "type": "recovery"}
            )
        except (AuthError, httpx.HTTPError) as e:
            raise _provider_error(e) from e
        return _require_session(response)

    async def exchange_authorization_code(self, code: str) -> AuthSession:
        try:
            response = await self._client.auth.exchange_code_for_session({"auth_code": code})
        except (AuthError, httpx.HTTPError) as e:
            raise _provider_error(e) from e
        return _require_session(response)

    async def set_session(self, access_token: str, refresh_token: str) -> AuthSession:
        try:
            response = await self._client.auth.set_session(access_token, refresh_token)
        except (AuthError, httpx.HTTPError) as e:
            raise _provider_error(e) from e
        return _require_session(response)

    async def get_current_session(self) -> AuthSession | None:
        try:
            session = await self._client.auth.get_session()
        except (AuthError, httpx.HTTPError) as e:
            raise _provider_error(e) from e
        return _to_session(session)

    def subscribe_auth_state_changes(self, callback: AuthStateCallback) -> AuthSubscription:
        def forward(event: str, session: Any) -> None:
            callback(_EVENTS.get(event, AuthChangeEvent.OTHER), _to_session(session))

        return self._client.auth.on_auth_state_change(forward)

    async def update_password(self, new_password: str) -> None:
        try:
            await self._client.auth.update_user({"password": new_password})
        except (AuthError, httpx.HTTPError) as e:
            raise _provider_error(e) from e

    async def sign_out(self, scope: SignOutScope = "local") -> None:
        try:
            await self._client.auth.sign_out({"scope": scope})
        except (AuthError, httpx.HTTPError) as e:
            raise _provider_error(e) from e

    async def send_recovery_email(self, email: str, redirect_url: str) -> None:
        try:
            await self._client.auth.reset_password_for_email(email, {"redirect_to": redirect_url})
        except (AuthError, httpx.HTTPError) as e:
            raise _provider_error(e) from e


# Verify we implement the protocol
_provider: IdentityProvider = SupabaseIdentityProvider(client=None)  # type: ignore[arg-type]
