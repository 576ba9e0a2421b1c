"""Password strength rules.

Pure functions only. The same rules drive the inline checklist shown
while typing and the validation done before a password is submitted.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from larmex.core.exceptions import PasswordsDoNotMatchError, PasswordTooWeakError
from larmex.core.recovery.types import PasswordChangeRequest

MIN_PASSWORD_LENGTH = 8


@dataclass(frozen=True)
class PasswordRule:
    """A single strength requirement."""

    label: str
    test: Callable[[str], bool]


@dataclass(frozen=True)
class RuleResult:
    """Outcome of one rule for a given password."""

    label: str
    passed: bool


@dataclass(frozen=True)
class PasswordStrength:
    """Number of rules met and the matching label."""

    score: int
    label: str


RULES: tuple[PasswordRule, ...] = (
    PasswordRule("At least 8 characters", lambda pw: len(pw) >= MIN_PASSWORD_LENGTH),
    PasswordRule("One uppercase letter", lambda pw: re.search(r"[A-Z]", pw) is not None),
    PasswordRule("One lowercase letter", lambda pw: re.search(r"[a-z]", pw) is not None),
    PasswordRule("One number", lambda pw: re.search(r"[0-9]", pw) is not None),
    PasswordRule(
        "One special character (!@#$...)",
        lambda pw: re.search(r"[^A-Za-z0-9]", pw) is not None,
    ),
)


def check_password(password: str) -> list[RuleResult]:
    """Evaluate every rule, in display order."""
    return [RuleResult(label=rule.label, passed=rule.test(password)) for rule in RULES]


def validate_password(password: str) -> bool:
    """Check that a password satisfies every rule."""
    return all(rule.test(password) for rule in RULES)


def password_strength(password: str) -> PasswordStrength:
    """Score a password for the strength meter."""
    score = sum(1 for result in check_password(password) if result.passed)
    if score <= 1:
        label = "Weak"
    elif score <= 3:
        label = "Fair"
    elif score <= 4:
        label = "Good"
    else:
        label = "Strong"
    return PasswordStrength(score=score, label=label)


def ensure_valid_change(request: PasswordChangeRequest) -> None:
    """Validate a password change locally, before any network call.

    Args:
        request: The new password and its confirmation.

    Raises:
        PasswordTooWeakError: If any strength rule fails.
        PasswordsDoNotMatchError: If the confirmation differs.
    """
    failed = [result.label for result in check_password(request.new_password) if not result.passed]
    if failed:
        raise PasswordTooWeakError(failed)
    if request.new_password != request.confirm_password:
        raise PasswordsDoNotMatchError()
