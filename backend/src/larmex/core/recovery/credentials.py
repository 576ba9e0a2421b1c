"""Recovery link parsing.

A recovery email links back to ``/reset-password`` carrying one of three
credential formats:

- implicit flow: ``#access_token=...&refresh_token=...&type=recovery``
- PKCE: ``?code=...``
- OTP: ``?token_hash=...&type=recovery`` (query string or fragment)

Parsing is pure: nothing here performs I/O or touches the page location.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal
from urllib.parse import parse_qs, urlsplit, urlunsplit

RECOVERY_TYPE = "recovery"

# Parameters that must never survive in a shareable URL.
RECOVERY_PARAMS = frozenset({"access_token", "refresh_token", "code", "token_hash"})


@dataclass(frozen=True)
class ImplicitTokens:
    """Access/refresh token pair delivered in the URL fragment."""

    access_token: str = field(repr=False)
    refresh_token: str = field(repr=False)
    type: Literal["recovery"] = RECOVERY_TYPE


@dataclass(frozen=True)
class AuthorizationCode:
    """PKCE authorization code delivered in the query string."""

    code: str = field(repr=False)


@dataclass(frozen=True)
class TokenHash:
    """One-time token hash delivered in the query string or fragment."""

    token_hash: str = field(repr=False)
    type: Literal["recovery"] = RECOVERY_TYPE


RecoveryLinkCredentials = ImplicitTokens | AuthorizationCode | TokenHash


def _params(component: str) -> dict[str, str]:
    """Decode a query string or fragment, dropping blank values."""
    parsed = parse_qs(component, keep_blank_values=False)
    return {key: values[0] for key, values in parsed.items() if values and values[0]}


def _split(url: str) -> tuple[dict[str, str], dict[str, str]]:
    parts = urlsplit(url)
    return _params(parts.query), _params(parts.fragment)


def parse_recovery_link(url: str) -> RecoveryLinkCredentials | None:
    """Classify a page URL into at most one recovery credential.

    When several formats coexist the most constrained one wins:
    token hash, then authorization code, then implicit tokens.

    Args:
        url: Full page URL, absolute or relative.

    Returns:
        The credential found, or None if the URL is not a recovery link.
    """
    query, fragment = _split(url)

    for primary, secondary in ((query, fragment), (fragment, query)):
        token_hash = primary.get("token_hash")
        if token_hash:
            link_type = primary.get("type") or secondary.get("type")
            if link_type == RECOVERY_TYPE:
                return TokenHash(token_hash=token_hash)

    code = query.get("code")
    if code:
        return AuthorizationCode(code=code)

    access_token = fragment.get("access_token")
    refresh_token = fragment.get("refresh_token")
    if access_token and refresh_token and fragment.get("type") == RECOVERY_TYPE:
        return ImplicitTokens(access_token=access_token, refresh_token=refresh_token)

    return None


def has_recovery_params(url: str) -> bool:
    """Check whether a URL still carries any one-time recovery parameter.

    Blank values count: a key alone is enough to keep the URL unshareable.
    """
    parts = urlsplit(url)
    keys: set[str] = set()
    for component in (parts.query, parts.fragment):
        keys.update(parse_qs(component, keep_blank_values=True))
    return bool(RECOVERY_PARAMS & keys)


def strip_recovery_params(url: str) -> str:
    """Return the bare location: scheme, host and path only.

    Args:
        url: Page URL, absolute or relative.

    Returns:
        The URL without query string or fragment.
    """
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
