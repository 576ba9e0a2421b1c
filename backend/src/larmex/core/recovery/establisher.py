"""Session establishment from recovery link credentials.

Strategies are tried strictly one after another, never concurrently, so a
one-time token hash is redeemed at most once and the first success is
deterministic:

1. token hash: OTP verification
2. authorization code: PKCE code exchange
3. implicit tokens: set the session from the token pair
4. existing session lookup

The last strategy always runs. The provider's own runtime may consume the
URL before this code does, in which case the session is already there.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog

from larmex.core.exceptions import IdentityProviderError
from larmex.core.recovery.credentials import (
    AuthorizationCode,
    ImplicitTokens,
    RecoveryLinkCredentials,
    TokenHash,
)
from larmex.core.recovery.identity import AuthSession, IdentityProvider
from larmex.core.recovery.location import PageLocation, clear_recovery_params
from larmex.core.recovery.types import InvalidReason, RecoverySessionState

logger = structlog.get_logger()

Strategy = tuple[str, Callable[[], Awaitable[AuthSession | None]]]


class SessionEstablisher:
    """Turns parsed recovery credentials into an authenticated session."""

    def __init__(self, provider: IdentityProvider, location: PageLocation) -> None:
        """Initialize the establisher.

        Args:
            provider: Identity provider client.
            location: Location of the view; cleaned on success.
        """
        self._provider = provider
        self._location = location

    def _strategies(self, credentials: RecoveryLinkCredentials | None) -> list[Strategy]:
        strategies: list[Strategy] = []
        if isinstance(credentials, TokenHash):
            token_hash = credentials.token_hash
            strategies.append(
                ("token_hash", lambda: self._provider.verify_recovery_token_hash(token_hash))
            )
        if isinstance(credentials, AuthorizationCode):
            code = credentials.code
            strategies.append(
                ("authorization_code", lambda: self._provider.exchange_authorization_code(code))
            )
        if isinstance(credentials, ImplicitTokens):
            tokens = credentials
            strategies.append(
                (
                    "implicit_tokens",
                    lambda: self._provider.set_session(tokens.access_token, tokens.refresh_token),
                )
            )
        strategies.append(("existing_session", self._provider.get_current_session))
        return strategies

    async def establish(
        self, credentials: RecoveryLinkCredentials | None
    ) -> RecoverySessionState:
        """Try each applicable strategy once, in order.

        Args:
            credentials: Parsed recovery credentials, or None.

        Returns:
            Valid state on the first success; invalid_or_expired when every
            strategy was rejected.
        """
        for name, attempt in self._strategies(credentials):
            try:
                session = await attempt()
            except IdentityProviderError as e:
                logger.info("recovery_strategy_failed", strategy=name, code=e.code)
                continue

            if session is None:
                logger.debug("recovery_strategy_no_session", strategy=name)
                continue

            clear_recovery_params(self._location)
            logger.info("recovery_session_established", strategy=name)
            return RecoverySessionState.valid()

        logger.info("recovery_strategies_exhausted")
        return RecoverySessionState.invalid(InvalidReason.INVALID_OR_EXPIRED)
