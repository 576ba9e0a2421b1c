"""Identity provider contract.

The identity provider owns sessions, password storage and recovery
emails. This module defines the fixed client contract the recovery flows
depend on. Implementations live in ``larmex.adapters.identity``.

Every operation that the provider can reject raises
``IdentityProviderError``; flows map it to user-facing errors.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Protocol, runtime_checkable


@dataclass(frozen=True)
class AuthSession:
    """Opaque credential bundle issued by the identity provider.

    Only its existence matters to the recovery flows; the tokens are kept
    out of ``repr`` so sessions never end up in logs.
    """

    access_token: str = field(repr=False)
    refresh_token: str = field(repr=False)


class AuthChangeEvent(str, Enum):
    """Auth-state notifications relevant to recovery."""

    PASSWORD_RECOVERY = "password_recovery"
    SIGNED_IN = "signed_in"
    OTHER = "other"


SignOutScope = Literal["local", "global"]

AuthStateCallback = Callable[[AuthChangeEvent, AuthSession | None], None]

# Provider error codes the flows react to.
SAME_PASSWORD_CODE = "same_password"
SESSION_MISSING_CODE = "session_missing"


@runtime_checkable
class AuthSubscription(Protocol):
    """Handle for an auth-state change subscription."""

    def unsubscribe(self) -> None:
        """Stop receiving notifications. Safe to call more than once."""
        ...


@runtime_checkable
class IdentityProvider(Protocol):
    """Client contract of the managed identity provider."""

    async def verify_recovery_token_hash(self, token_hash: str) -> AuthSession:
        """Redeem a one-time recovery token hash.

        Args:
            token_hash: Token hash from the recovery link.

        Returns:
            The established session.

        Raises:
            IdentityProviderError: If the hash is expired, used or malformed.
        """
        ...

    async def exchange_authorization_code(self, code: str) -> AuthSession:
        """Exchange a PKCE authorization code for a session.

        Raises:
            IdentityProviderError: If the code is rejected.
        """
        ...

    async def set_session(self, access_token: str, refresh_token: str) -> AuthSession:
        """Establish a session from an implicit-flow token pair.

        Raises:
            IdentityProviderError: If the tokens are rejected.
        """
        ...

    async def get_current_session(self) -> AuthSession | None:
        """Return the session the provider runtime already holds, if any."""
        ...

    def subscribe_auth_state_changes(self, callback: AuthStateCallback) -> AuthSubscription:
        """Register for auth-state notifications.

        The provider runtime may fire ``password_recovery`` or
        ``signed_in`` on its own when it processes the page URL.
        """
        ...

    async def update_password(self, new_password: str) -> None:
        """Change the password of the signed-in account.

        Raises:
            IdentityProviderError: With code ``same_password`` when the new
                password equals the current one, ``session_missing`` when no
                session backs the call.
        """
        ...

    async def sign_out(self, scope: SignOutScope = "local") -> None:
        """End the local session, or every session of the account."""
        ...

    async def send_recovery_email(self, email: str, redirect_url: str) -> None:
        """Ask the provider to email a recovery link.

        Raises:
            IdentityProviderError: On any provider failure.
        """
        ...
