"""Password update flow, gated on a valid recovery session.

Side effects are strictly ordered: session gate, local validation,
provider update, then global sign-out and redirect. Nothing reaches the
network unless the gate and the validation both pass.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

from larmex.core.exceptions import (
    IdentityProviderError,
    PasswordUpdateFailedError,
    SamePasswordRejectedError,
    SessionExpiredMidFlowError,
    UpdateInProgressError,
    UpdateTimedOutError,
)
from larmex.core.recovery.identity import (
    SAME_PASSWORD_CODE,
    SESSION_MISSING_CODE,
    IdentityProvider,
)
from larmex.core.recovery.password import ensure_valid_change
from larmex.core.recovery.types import (
    PasswordChangeRequest,
    PasswordUpdateResult,
    RecoverySessionState,
)

logger = structlog.get_logger()

DEFAULT_UPDATE_TIMEOUT_SECONDS = 15.0
LOGIN_SUCCESS_REDIRECT = "/auth?tab=login&reset=success"

_SAME_PASSWORD_PHRASES = ("same password", "different from the old password")


def is_same_password_error(error: IdentityProviderError) -> bool:
    """Detect the provider's "new password equals old password" rejection."""
    if error.code == SAME_PASSWORD_CODE:
        return True
    message = error.message.lower()
    return any(phrase in message for phrase in _SAME_PASSWORD_PHRASES)


class PasswordUpdateFlow:
    """Validates and submits a new password for one reset-password view."""

    def __init__(
        self,
        provider: IdentityProvider,
        state_source: Callable[[], RecoverySessionState],
        update_timeout: float = DEFAULT_UPDATE_TIMEOUT_SECONDS,
        success_redirect: str = LOGIN_SUCCESS_REDIRECT,
    ) -> None:
        """Initialize the flow.

        Args:
            provider: Identity provider client holding the recovery session.
            state_source: Returns the view's current recovery state.
            update_timeout: Deadline for the provider's password update.
            success_redirect: Where to send the user after success.
        """
        self._provider = provider
        self._state_source = state_source
        self._update_timeout = update_timeout
        self._success_redirect = success_redirect
        self._in_flight = False
        self._completed = False
        self._background: set[asyncio.Task[None]] = set()

    @property
    def completed(self) -> bool:
        """Whether the password has already been changed."""
        return self._completed

    async def submit(self, request: PasswordChangeRequest) -> PasswordUpdateResult:
        """Change the password.

        Args:
            request: New password and confirmation.

        Returns:
            Where to redirect the user.

        Raises:
            SessionExpiredMidFlowError: No valid recovery session (no retry).
            PasswordTooWeakError: Local strength rules failed.
            PasswordsDoNotMatchError: Confirmation mismatch.
            UpdateInProgressError: Another submit is still running.
            UpdateTimedOutError: The provider did not answer in time.
            SamePasswordRejectedError: New password equals the current one.
            PasswordUpdateFailedError: Any other provider failure.
        """
        if self._completed or not self._state_source().is_valid:
            logger.info("password_update_rejected_no_session")
            raise SessionExpiredMidFlowError()

        ensure_valid_change(request)

        if self._in_flight:
            raise UpdateInProgressError()
        self._in_flight = True
        try:
            async with asyncio.timeout(self._update_timeout):
                await self._provider.update_password(request.new_password)
        except TimeoutError:
            logger.warning("password_update_timed_out", timeout=self._update_timeout)
            raise UpdateTimedOutError() from None
        except IdentityProviderError as e:
            if is_same_password_error(e):
                logger.info("password_update_same_password")
                raise SamePasswordRejectedError() from None
            if e.code == SESSION_MISSING_CODE:
                logger.warning("password_update_session_missing")
                raise SessionExpiredMidFlowError() from None
            logger.error("password_update_failed", code=e.code)
            raise PasswordUpdateFailedError() from None
        finally:
            self._in_flight = False

        self._completed = True
        logger.info("password_update_successful")
        self._schedule_global_sign_out()
        return PasswordUpdateResult(redirect_url=self._success_redirect)

    async def drain(self) -> None:
        """Wait for background sign-outs to settle."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    def _schedule_global_sign_out(self) -> None:
        # The redirect never waits on this
        task = asyncio.get_running_loop().create_task(self._sign_out_everywhere())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _sign_out_everywhere(self) -> None:
        try:
            await self._provider.sign_out("global")
            logger.info("password_reset_global_sign_out")
        except IdentityProviderError as e:
            logger.warning("password_reset_global_sign_out_failed", code=e.code)
