"""Recovery state machine for the reset-password view.

Three sources race to decide whether the view holds a recovery session:

- the session establisher, working through the link credentials
- auth-state notifications from the provider runtime, which may process
  the URL on its own before application code runs
- the check timer

The state is a single-assignment cell. The first source to resolve
commits a terminal state, tears the others down and every later
resolution is a no-op. All callbacks run on the event loop thread, so
the check-and-set in ``_resolve`` cannot interleave.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

from larmex.core.recovery.credentials import parse_recovery_link
from larmex.core.recovery.establisher import SessionEstablisher
from larmex.core.recovery.identity import (
    AuthChangeEvent,
    AuthSession,
    AuthSubscription,
    IdentityProvider,
)
from larmex.core.recovery.location import PageLocation, clear_recovery_params
from larmex.core.recovery.types import InvalidReason, RecoverySessionState

logger = structlog.get_logger()

DEFAULT_CHECK_TIMEOUT_SECONDS = 5.0

_CONFIRMING_EVENTS = frozenset({AuthChangeEvent.PASSWORD_RECOVERY, AuthChangeEvent.SIGNED_IN})

StateListener = Callable[[RecoverySessionState], None]


def _current_task() -> asyncio.Task[object] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class RecoveryStateMachine:
    """Owns the recovery state for the lifetime of one view.

    Usage:
        machine = RecoveryStateMachine(provider, location)
        state = await machine.run()
        ...
        machine.dispose()  # on unmount
    """

    def __init__(
        self,
        provider: IdentityProvider,
        location: PageLocation,
        check_timeout: float = DEFAULT_CHECK_TIMEOUT_SECONDS,
        establisher: SessionEstablisher | None = None,
    ) -> None:
        """Initialize the state machine in the checking state.

        Args:
            provider: Identity provider client.
            location: Location of the view.
            check_timeout: Seconds to wait for any resolution.
            establisher: Session establisher; built from provider and
                location if not given.
        """
        self._provider = provider
        self._location = location
        self._check_timeout = check_timeout
        self._establisher = establisher or SessionEstablisher(provider, location)

        self._state = RecoverySessionState.checking()
        self._resolved = asyncio.Event()
        self._started = False
        self._disposed = False
        self._timer: asyncio.TimerHandle | None = None
        self._subscription: AuthSubscription | None = None
        self._task: asyncio.Task[None] | None = None
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> RecoverySessionState:
        """Current recovery state."""
        return self._state

    @property
    def disposed(self) -> bool:
        return self._disposed

    def add_listener(self, listener: StateListener) -> None:
        """Register a callback for the terminal transition."""
        self._listeners.append(listener)

    def start(self) -> None:
        """Begin checking. Runs once per instance; later calls are no-ops.

        Must be called from a running event loop.
        """
        if self._started or self._disposed:
            return
        self._started = True

        loop = asyncio.get_running_loop()
        subscription = self._provider.subscribe_auth_state_changes(self._on_auth_state_change)
        if self._state.is_terminal:
            # Notification fired during subscribe
            subscription.unsubscribe()
            return
        self._subscription = subscription
        self._timer = loop.call_later(self._check_timeout, self._on_timeout)
        self._task = loop.create_task(self._establish())

    async def wait(self) -> RecoverySessionState:
        """Wait for a terminal state, or for disposal."""
        await self._resolved.wait()
        return self._state

    async def run(self) -> RecoverySessionState:
        """Start checking and wait for the verdict."""
        self.start()
        return await self.wait()

    def dispose(self) -> None:
        """Tear down on view unmount. No transition happens afterwards."""
        if self._disposed:
            return
        self._disposed = True
        self._teardown()
        self._resolved.set()
        logger.debug("recovery_state_machine_disposed", status=self._state.status.value)

    async def _establish(self) -> None:
        credentials = parse_recovery_link(self._location.href)
        try:
            state = await self._establisher.establish(credentials)
        except Exception:
            logger.exception("recovery_establish_crashed")
            self._resolve(
                RecoverySessionState.invalid(InvalidReason.INVALID_OR_EXPIRED), "establisher"
            )
            return

        if state.is_valid or credentials is not None:
            self._resolve(state, "establisher")
        else:
            # Nothing to redeem: only a notification or the timer can decide.
            logger.info("recovery_awaiting_auth_event", timeout=self._check_timeout)

    def _on_auth_state_change(self, event: AuthChangeEvent, session: AuthSession | None) -> None:
        if event in _CONFIRMING_EVENTS:
            self._resolve(RecoverySessionState.valid(), f"auth_event:{event.value}")

    def _on_timeout(self) -> None:
        self._timer = None
        self._resolve(RecoverySessionState.invalid(InvalidReason.TIMEOUT), "timer")

    def _resolve(self, state: RecoverySessionState, source: str) -> bool:
        """Commit a terminal state if none has been committed yet.

        Returns:
            True if this call decided the state.
        """
        if self._disposed or self._state.is_terminal:
            logger.debug("recovery_resolution_ignored", source=source)
            return False

        self._state = state
        if state.is_valid:
            clear_recovery_params(self._location)
        self._teardown()
        self._resolved.set()

        logger.info(
            "recovery_state_resolved",
            status=state.status.value,
            reason=state.reason.value if state.reason else None,
            source=source,
        )
        for listener in list(self._listeners):
            listener(state)
        return True

    def _teardown(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        task = self._task
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()
