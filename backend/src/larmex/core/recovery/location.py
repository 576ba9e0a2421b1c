"""Page location and history handling for the reset-password view."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import structlog

from larmex.core.recovery.credentials import has_recovery_params, strip_recovery_params

logger = structlog.get_logger()


@runtime_checkable
class PageLocation(Protocol):
    """The current page URL plus history-entry replacement."""

    @property
    def href(self) -> str:
        """Full current URL."""
        ...

    def replace_state(self, url: str) -> None:
        """Replace the current history entry (no new entry is pushed)."""
        ...


class InMemoryPageLocation:
    """Server-side stand-in for the browser location of one view.

    Every replacement is recorded so the browser shell can mirror it
    with ``history.replaceState``.
    """

    def __init__(self, href: str) -> None:
        """Initialize with the URL the view was opened on.

        Args:
            href: Page URL as seen by the browser.
        """
        self._href = href
        self.replacements: list[str] = []

    @property
    def href(self) -> str:
        """Full current URL."""
        return self._href

    def replace_state(self, url: str) -> None:
        """Replace the current history entry."""
        self._href = url
        self.replacements.append(url)


def clear_recovery_params(location: PageLocation) -> bool:
    """Drop one-time recovery credentials from the visible URL.

    Args:
        location: Location of the current view.

    Returns:
        True if the history entry was replaced.
    """
    if not has_recovery_params(location.href):
        return False
    location.replace_state(strip_recovery_params(location.href))
    logger.debug("recovery_params_cleared")
    return True
