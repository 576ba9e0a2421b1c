"""Identity provider fixtures for testing."""

from __future__ import annotations

import asyncio

import pytest

from larmex.core.exceptions import IdentityProviderError
from larmex.core.recovery.identity import (
    AuthChangeEvent,
    AuthSession,
    AuthStateCallback,
    SignOutScope,
)

RECOVERY_SESSION = AuthSession(access_token="AT", refresh_token="RT")  # pragma: allowlist secret


class FakeSubscription:
    """Subscription handle recording whether it is still active."""

    def __init__(self, provider: FakeIdentityProvider, callback: AuthStateCallback) -> None:
        self._provider = provider
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        self.active = False
        if self in self._provider.subscriptions:
            self._provider.subscriptions.remove(self)


class FakeIdentityProvider:
    """Scriptable in-memory identity provider.

    Credentials are one-time: a redeemed token hash or code is rejected
    on a second attempt, like the real provider.
    """

    def __init__(self) -> None:
        self.valid_token_hashes: set[str] = set()
        self.valid_codes: set[str] = set()
        self.valid_token_pairs: set[tuple[str, str]] = set()
        self.session: AuthSession | None = None
        self.subscriptions: list[FakeSubscription] = []
        self.callbacks: list[AuthStateCallback] = []
        self.calls: list[str] = []

        self.redeem_delay = 0.0
        self.update_delay = 0.0
        self.update_error: IdentityProviderError | None = None
        self.send_error: IdentityProviderError | None = None
        self.sign_out_error: IdentityProviderError | None = None

        self.passwords: list[str] = []
        self.sign_out_scopes: list[SignOutScope] = []
        self.sent_emails: list[tuple[str, str]] = []

    def emit(self, event: AuthChangeEvent, session: AuthSession | None = None) -> None:
        """Fire an auth-state notification to every active subscriber."""
        for subscription in list(self.subscriptions):
            subscription.callback(event, session)

    async def _redeem(self) -> AuthSession:
        if self.redeem_delay:
            await asyncio.sleep(self.redeem_delay)
        self.session = RECOVERY_SESSION
        return self.session

    async def verify_recovery_token_hash(self, token_hash: str) -> AuthSession:
        self.calls.append("verify_recovery_token_hash")
        if token_hash not in self.valid_token_hashes:
            raise IdentityProviderError("Token has expired or is invalid", code="otp_expired")
        self.valid_token_hashes.discard(token_hash)
        return await self._redeem()

    async def exchange_authorization_code(self, code: str) -> AuthSession:
        self.calls.append("exchange_authorization_code")
        if code not in self.valid_codes:
            raise IdentityProviderError("invalid flow state", code="flow_state_not_found")
        self.valid_codes.discard(code)
        return await self._redeem()

    async def set_session(self, access_token: str, refresh_token: str) -> AuthSession:
        self.calls.append("set_session")
        if (access_token, refresh_token) not in self.valid_token_pairs:
            raise IdentityProviderError("Invalid Refresh Token", code="refresh_token_not_found")
        return await self._redeem()

    async def get_current_session(self) -> AuthSession | None:
        self.calls.append("get_current_session")
        return self.session

    def subscribe_auth_state_changes(self, callback: AuthStateCallback) -> FakeSubscription:
        self.calls.append("subscribe_auth_state_changes")
        self.callbacks.append(callback)
        subscription = FakeSubscription(self, callback)
        self.subscriptions.append(subscription)
        return subscription

    async def update_password(self, new_password: str) -> None:
        self.calls.append("update_password")
        if self.update_delay:
            await asyncio.sleep(self.update_delay)
        if self.update_error is not None:
            raise self.update_error
        self.passwords.append(new_password)

    async def sign_out(self, scope: SignOutScope = "local") -> None:
        self.calls.append("sign_out")
        if self.sign_out_error is not None:
            raise self.sign_out_error
        self.sign_out_scopes.append(scope)
        self.session = None

    async def send_recovery_email(self, email: str, redirect_url: str) -> None:
        self.calls.append("send_recovery_email")
        if self.send_error is not None:
            raise self.send_error
        self.sent_emails.append((email, redirect_url))


@pytest.fixture
def fake_identity() -> FakeIdentityProvider:
    """Return an identity provider with no valid credentials."""
    return FakeIdentityProvider()
