"""Forgot-password request flow.

For security, requesting a reset always reports the same outcome: the
response never reveals whether an account exists for the address, and
provider failures are discarded rather than classified. The resend
cooldown is a UX limit per view session, not a security control.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass

import structlog
from pydantic import EmailStr, TypeAdapter, ValidationError

from larmex.core.exceptions import (
    IdentityProviderError,
    InvalidEmailError,
    ResendCooldownActiveError,
)
from larmex.core.recovery.identity import IdentityProvider

logger = structlog.get_logger()

RESEND_COOLDOWN_SECONDS = 60

RESET_SENT_MESSAGE = "If an account with that email exists, we've sent a password reset link."
LATEST_LINK_NOTICE = (
    "Use the most recent reset email only. Older reset links become invalid after a new request."
)

_email_adapter: TypeAdapter[str] = TypeAdapter(EmailStr)


@dataclass(frozen=True)
class ResetRequestOutcome:
    """What the user sees after requesting a reset link."""

    message: str
    notice: str
    cooldown_seconds: int


def normalize_email(email: str) -> str:
    """Validate the email format locally and return it trimmed.

    Raises:
        InvalidEmailError: If the address is malformed.
    """
    try:
        return _email_adapter.validate_python(email.strip())
    except ValidationError:
        raise InvalidEmailError() from None


class ForgotPasswordFlow:
    """Initiates recovery emails for one view session."""

    def __init__(
        self,
        provider: IdentityProvider,
        redirect_url: str,
        cooldown_seconds: int = RESEND_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the flow.

        Args:
            provider: Identity provider client.
            redirect_url: Reset-password page the emailed link returns to.
            cooldown_seconds: Minimum spacing between sends.
            clock: Monotonic clock, in seconds.
        """
        self._provider = provider
        self._redirect_url = redirect_url
        self._cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._last_sent_at: float | None = None

    @property
    def cooldown_remaining(self) -> int:
        """Whole seconds until another send is accepted."""
        if self._last_sent_at is None:
            return 0
        remaining = self._cooldown_seconds - (self._clock() - self._last_sent_at)
        return max(0, math.ceil(remaining))

    async def request_reset(self, email: str) -> ResetRequestOutcome:
        """Send a recovery link if the address is registered.

        Args:
            email: Address typed by the user.

        Returns:
            The generic outcome, identical for known and unknown addresses.

        Raises:
            InvalidEmailError: If the address is malformed.
            ResendCooldownActiveError: If called during the cooldown.
        """
        address = normalize_email(email)

        remaining = self.cooldown_remaining
        if remaining > 0:
            raise ResendCooldownActiveError(remaining)

        # Start the cooldown before awaiting so a double submit is rejected
        self._last_sent_at = self._clock()

        domain = address.rsplit("@", 1)[-1]
        try:
            await self._provider.send_recovery_email(address, self._redirect_url)
            logger.info("password_reset_email_requested", email_domain=domain)
        except IdentityProviderError as e:
            # Discarded so the response cannot reveal account existence
            logger.info("password_reset_email_not_sent", email_domain=domain, code=e.code)

        return ResetRequestOutcome(
            message=RESET_SENT_MESSAGE,
            notice=LATEST_LINK_NOTICE,
            cooldown_seconds=self._cooldown_seconds,
        )
