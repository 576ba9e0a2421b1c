"""Domain-specific exceptions.

All exceptions in the larmex system inherit from LarmexError, making it
easy to catch all recovery errors while still being able to handle
specific error types. Every error carries a user-facing message; raw
identity provider errors are never shown to users.
"""

from __future__ import annotations


class LarmexError(Exception):
    """Base exception for all larmex errors."""

    def __init__(self, message: str) -> None:
        """Initialize LarmexError.

        Args:
            message: User-facing error description.
        """
        super().__init__(message)
        self.message = message


class IdentityProviderError(LarmexError):
    """The identity provider rejected or failed an operation.

    Raised by identity provider adapters only. Flows catch it at their
    boundary and map it to one of the user-facing errors below.

    Attributes:
        code: Provider error code, when the provider supplied one.
    """

    def __init__(self, message: str, code: str | None = None) -> None:
        """Initialize IdentityProviderError.

        Args:
            message: Provider error description.
            code: Optional provider error code (e.g. "same_password").
        """
        super().__init__(message)
        self.code = code


class LinkInvalidOrExpiredError(LarmexError):
    """The recovery link could not be turned into a session."""

    def __init__(
        self, message: str = "This password reset link is invalid or has expired."
    ) -> None:
        """Initialize LinkInvalidOrExpiredError."""
        super().__init__(message)


class PasswordTooWeakError(LarmexError):
    """New password fails local strength rules. Never sent to the provider.

    Attributes:
        failed_rules: Labels of the rules the password does not satisfy.
    """

    def __init__(self, failed_rules: list[str]) -> None:
        """Initialize PasswordTooWeakError.

        Args:
            failed_rules: Labels of the unmet rules.
        """
        super().__init__("Password does not meet the strength requirements.")
        self.failed_rules = failed_rules


class PasswordsDoNotMatchError(LarmexError):
    """Confirmation field differs from the password field."""

    def __init__(self) -> None:
        """Initialize PasswordsDoNotMatchError."""
        super().__init__("Passwords don't match.")


class SamePasswordRejectedError(LarmexError):
    """The provider refused a new password equal to the current one."""

    def __init__(self) -> None:
        """Initialize SamePasswordRejectedError."""
        super().__init__(
            "Choose a different password. Your new password must be different "
            "from your current password."
        )


class UpdateTimedOutError(LarmexError):
    """The password update did not settle within its deadline.

    The outcome of the underlying operation is unknown.
    """

    def __init__(self) -> None:
        """Initialize UpdateTimedOutError."""
        super().__init__("The request took too long. Please try again.")


class SessionExpiredMidFlowError(LarmexError):
    """No valid recovery session backs the password update.

    Terminal: the user must request a new link.
    """

    def __init__(self) -> None:
        """Initialize SessionExpiredMidFlowError."""
        super().__init__("Your reset session has expired. Please request a new link.")


class PasswordUpdateFailedError(LarmexError):
    """The provider failed the password update for an unclassified reason."""

    def __init__(self) -> None:
        """Initialize PasswordUpdateFailedError."""
        super().__init__("We couldn't update your password. Please try again.")


class UpdateInProgressError(LarmexError):
    """A password update is already running for this view."""

    def __init__(self) -> None:
        """Initialize UpdateInProgressError."""
        super().__init__("Your password is already being updated.")


class InvalidEmailError(LarmexError):
    """Email address failed local format validation."""

    def __init__(self) -> None:
        """Initialize InvalidEmailError."""
        super().__init__("Please enter a valid email address.")


class ResendCooldownActiveError(LarmexError):
    """A recovery email was requested too soon after the previous one.

    Attributes:
        retry_after: Whole seconds until another request is accepted.
    """

    def __init__(self, retry_after: int) -> None:
        """Initialize ResendCooldownActiveError.

        Args:
            retry_after: Seconds remaining in the cooldown.
        """
        super().__init__(f"Please wait {retry_after}s before requesting another link.")
        self.retry_after = retry_after
