"""Recovery domain types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class RecoveryStatus(str, Enum):
    """Lifecycle of a reset-password view's recovery session."""

    CHECKING = "checking"
    VALID = "valid"
    INVALID = "invalid"


class InvalidReason(str, Enum):
    """Why a recovery link was rejected."""

    INVALID_OR_EXPIRED = "invalid_or_expired"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class RecoverySessionState:
    """Transient recovery state. Never persisted."""

    status: RecoveryStatus
    reason: InvalidReason | None = None

    @classmethod
    def checking(cls) -> RecoverySessionState:
        return cls(RecoveryStatus.CHECKING)

    @classmethod
    def valid(cls) -> RecoverySessionState:
        return cls(RecoveryStatus.VALID)

    @classmethod
    def invalid(cls, reason: InvalidReason) -> RecoverySessionState:
        return cls(RecoveryStatus.INVALID, reason)

    @property
    def is_terminal(self) -> bool:
        """Valid and invalid states never transition again."""
        return self.status is not RecoveryStatus.CHECKING

    @property
    def is_valid(self) -> bool:
        return self.status is RecoveryStatus.VALID


@dataclass(frozen=True)
class PasswordChangeRequest:
    """New password plus its confirmation, for one submit action."""

    new_password: str = field(repr=False)
    confirm_password: str = field(repr=False)


@dataclass(frozen=True)
class PasswordUpdateResult:
    """Outcome of a successful password change."""

    redirect_url: str
    message: str = "Password updated! Please log in with your new password."
