"""Reset-password view: one mounted instance of the recovery page.

A view ties together the page location, the recovery state machine and
the password update flow for a single visit to ``/reset-password``.
Views are held in a registry between requests and closed on unmount.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from larmex.core.exceptions import IdentityProviderError, LinkInvalidOrExpiredError
from larmex.core.recovery.identity import IdentityProvider
from larmex.core.recovery.location import InMemoryPageLocation
from larmex.core.recovery.state import DEFAULT_CHECK_TIMEOUT_SECONDS, RecoveryStateMachine
from larmex.core.recovery.types import (
    PasswordChangeRequest,
    PasswordUpdateResult,
    RecoverySessionState,
    RecoveryStatus,
)
from larmex.core.recovery.update import (
    DEFAULT_UPDATE_TIMEOUT_SECONDS,
    LOGIN_SUCCESS_REDIRECT,
    PasswordUpdateFlow,
)

logger = structlog.get_logger()

FORGOT_PASSWORD_PATH = "/forgot-password"
DEFAULT_VIEW_MAX_AGE_SECONDS = 900.0


@dataclass(frozen=True)
class ViewScreen:
    """User-visible screen for a recovery state."""

    title: str
    description: str
    action_label: str | None = None
    action_url: str | None = None


_SCREENS = {
    RecoveryStatus.CHECKING: ViewScreen(
        title="Verifying your reset link...",
        description="Hold on while we check your password reset link.",
    ),
    RecoveryStatus.INVALID: ViewScreen(
        title="Invalid or Expired Link",
        description=LinkInvalidOrExpiredError().message,
        action_label="Request a new link",
        action_url=FORGOT_PASSWORD_PATH,
    ),
    RecoveryStatus.VALID: ViewScreen(
        title="Set New Password",
        description="Enter your new password below.",
    ),
}


class ResetPasswordView:
    """One mounted reset-password page."""

    def __init__(
        self,
        provider: IdentityProvider,
        url: str,
        check_timeout: float = DEFAULT_CHECK_TIMEOUT_SECONDS,
        update_timeout: float = DEFAULT_UPDATE_TIMEOUT_SECONDS,
        success_redirect: str = LOGIN_SUCCESS_REDIRECT,
        view_id: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Mount the view on a page URL.

        Args:
            provider: Identity provider client dedicated to this view.
            url: Page URL the browser opened.
            check_timeout: Deadline for the recovery check.
            update_timeout: Deadline for the password update call.
            success_redirect: Redirect after a successful change.
            view_id: Identifier; generated if not provided.
            clock: Monotonic clock used for registry eviction.
        """
        self.id = view_id or uuid.uuid4().hex
        self.location = InMemoryPageLocation(url)
        self.created_at = clock()
        self.provider = provider
        self._closed = False
        self.machine = RecoveryStateMachine(provider, self.location, check_timeout=check_timeout)
        self.update_flow = PasswordUpdateFlow(
            provider,
            lambda: self.machine.state,
            update_timeout=update_timeout,
            success_redirect=success_redirect,
        )

    @property
    def state(self) -> RecoverySessionState:
        return self.machine.state

    @property
    def url(self) -> str:
        """Location the browser should show; cleaned once valid."""
        return self.location.href

    def screen(self) -> ViewScreen:
        return _SCREENS[self.state.status]

    async def open(self) -> RecoverySessionState:
        """Run the recovery check and return its verdict."""
        return await self.machine.run()

    async def submit_password(self, request: PasswordChangeRequest) -> PasswordUpdateResult:
        """Submit a new password through the update flow."""
        return await self.update_flow.submit(request)

    def close(self) -> asyncio.Task[None] | None:
        """Unmount: cancel the check timer and the notification subscription.

        A recovery session that never changed the password is signed out
        locally, which also stops the client refreshing it.

        Returns:
            The sign-out task, if one was started.
        """
        if self._closed:
            return None
        self._closed = True
        was_valid = self.state.is_valid
        self.machine.dispose()
        if not was_valid or self.update_flow.completed:
            return None
        return asyncio.get_running_loop().create_task(self._release_session())

    async def _release_session(self) -> None:
        try:
            await self.provider.sign_out("local")
            logger.info("reset_view_session_released", view_id=self.id)
        except IdentityProviderError as e:
            logger.warning("reset_view_session_release_failed", view_id=self.id, code=e.code)


class ResetPasswordViewRegistry:
    """In-memory registry of mounted views, with age-based eviction."""

    def __init__(
        self,
        max_age_seconds: float = DEFAULT_VIEW_MAX_AGE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the registry.

        Args:
            max_age_seconds: Views older than this are closed and dropped.
            clock: Monotonic clock matching the views' clock.
        """
        self._views: dict[str, ResetPasswordView] = {}
        self._releasing: set[asyncio.Task[None]] = set()
        self._max_age_seconds = max_age_seconds
        self._clock = clock

    def __len__(self) -> int:
        return len(self._views)

    def add(self, view: ResetPasswordView) -> None:
        self.evict_expired()
        self._views[view.id] = view

    def get(self, view_id: str) -> ResetPasswordView | None:
        self.evict_expired()
        return self._views.get(view_id)

    def remove(self, view_id: str) -> bool:
        """Close and drop a view. Returns False if it was unknown."""
        view = self._views.pop(view_id, None)
        if view is None:
            return False
        task = view.close()
        if task is not None:
            self._releasing.add(task)
            task.add_done_callback(self._releasing.discard)
        return True

    def evict_expired(self) -> int:
        """Close views older than the maximum age."""
        cutoff = self._clock() - self._max_age_seconds
        expired = [view_id for view_id, view in self._views.items() if view.created_at < cutoff]
        for view_id in expired:
            self.remove(view_id)
        if expired:
            logger.info("reset_views_evicted", count=len(expired))
        return len(expired)

    def close_all(self) -> None:
        for view_id in list(self._views):
            self.remove(view_id)

    async def drain(self) -> None:
        """Wait for sign-outs of closed views to settle."""
        if self._releasing:
            await asyncio.gather(*self._releasing, return_exceptions=True)
