"""Password recovery domain: link parsing, session bootstrap and password change."""

from larmex.core.recovery.credentials import (
    AuthorizationCode,
    ImplicitTokens,
    RecoveryLinkCredentials,
    TokenHash,
    parse_recovery_link,
    strip_recovery_params,
)
from larmex.core.recovery.establisher import SessionEstablisher
from larmex.core.recovery.identity import (
    AuthChangeEvent,
    AuthSession,
    AuthSubscription,
    IdentityProvider,
)
from larmex.core.recovery.location import InMemoryPageLocation, PageLocation
from larmex.core.recovery.password import check_password, password_strength, validate_password
from larmex.core.recovery.request import ForgotPasswordFlow, ResetRequestOutcome
from larmex.core.recovery.state import RecoveryStateMachine
from larmex.core.recovery.types import (
    InvalidReason,
    PasswordChangeRequest,
    PasswordUpdateResult,
    RecoverySessionState,
    RecoveryStatus,
)
from larmex.core.recovery.update import PasswordUpdateFlow
from larmex.core.recovery.view import ResetPasswordView, ResetPasswordViewRegistry

__all__ = [
    "AuthChangeEvent",
    "AuthSession",
    "AuthSubscription",
    "AuthorizationCode",
    "ForgotPasswordFlow",
    "IdentityProvider",
    "ImplicitTokens",
    "InMemoryPageLocation",
    "InvalidReason",
    "PageLocation",
    "PasswordChangeRequest",
    "PasswordUpdateFlow",
    "PasswordUpdateResult",
    "RecoveryLinkCredentials",
    "RecoverySessionState",
    "RecoveryStateMachine",
    "RecoveryStatus",
    "ResetPasswordView",
    "ResetPasswordViewRegistry",
    "ResetRequestOutcome",
    "SessionEstablisher",
    "TokenHash",
    "check_password",
    "parse_recovery_link",
    "password_strength",
    "strip_recovery_params",
    "validate_password",
]
