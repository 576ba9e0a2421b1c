"""Tests for recovery link parsing."""

from __future__ import annotations

import pytest

from larmex.core.recovery.credentials import (
    AuthorizationCode,
    ImplicitTokens,
    TokenHash,
    has_recovery_params,
    parse_recovery_link,
    strip_recovery_params,
)


class TestParseRecoveryLink:
    """Tests for parse_recovery_link."""

    def test_implicit_tokens_in_fragment(self) -> None:
        """Fragment tokens with type=recovery are implicit-flow credentials."""
        result = parse_recovery_link(
            "https://larmex.example/reset-password#access_token=AT&refresh_token=RT&type=recovery"
        )

        assert result == ImplicitTokens(access_token="AT", refresh_token="RT")

    def test_implicit_tokens_require_recovery_type(self) -> None:
        """A signup or magic-link fragment is not a recovery link."""
        assert (
            parse_recovery_link("/reset-password#access_token=AT&refresh_token=RT&type=signup")
            is None
        )
        assert parse_recovery_link("/reset-password#access_token=AT&refresh_token=RT") is None

    def test_implicit_tokens_require_both_tokens(self) -> None:
        """An access token alone cannot establish a session."""
        assert parse_recovery_link("/reset-password#access_token=AT&type=recovery") is None

    def test_authorization_code_in_query(self) -> None:
        """A PKCE code in the query string is accepted on its own."""
        assert parse_recovery_link("/reset-password?code=abc123") == AuthorizationCode(
            code="abc123"
        )

    @pytest.mark.parametrize(
        "url",
        [
            "/reset-password?token_hash=th_1&type=recovery",
            "/reset-password#token_hash=th_1&type=recovery",
            "/reset-password?token_hash=th_1#type=recovery",
        ],
    )
    def test_token_hash(self, url: str) -> None:
        """Token hash is found in the query string or the fragment."""
        assert parse_recovery_link(url) == TokenHash(token_hash="th_1")

    def test_token_hash_requires_recovery_type(self) -> None:
        """A token hash for another flow is ignored."""
        assert parse_recovery_link("/reset-password?token_hash=th_1&type=email") is None

    def test_token_hash_wins_over_code_and_tokens(self) -> None:
        """Token hash takes precedence when several formats coexist."""
        url = (
            "/reset-password?code=abc&token_hash=th_1&type=recovery"
            "#access_token=AT&refresh_token=RT&type=recovery"
        )

        assert parse_recovery_link(url) == TokenHash(token_hash="th_1")

    def test_code_wins_over_implicit_tokens(self) -> None:
        """Authorization code takes precedence over fragment tokens."""
        url = "/reset-password?code=abc#access_token=AT&refresh_token=RT&type=recovery"

        assert parse_recovery_link(url) == AuthorizationCode(code="abc")

    def test_no_credentials(self) -> None:
        """A bare page URL carries no credentials."""
        assert parse_recovery_link("https://larmex.example/reset-password") is None

    def test_blank_values_are_absent(self) -> None:
        """Empty parameters do not count as credentials."""
        assert parse_recovery_link("/reset-password?code=&token_hash=&type=recovery") is None

    def test_url_encoded_values(self) -> None:
        """Values are percent-decoded."""
        result = parse_recovery_link("/reset-password?code=a%2Bb%3D")

        assert result == AuthorizationCode(code="a+b=")

    def test_credentials_hidden_from_repr(self) -> None:
        """Tokens never show up in repr (and so never in logs)."""
        tokens = ImplicitTokens(access_token="secret-at", refresh_token="secret-rt")

        assert "secret-at" not in repr(tokens)
        assert "secret-rt" not in repr(tokens)


class TestStripRecoveryParams:
    """Tests for URL cleanup helpers."""

    def test_strips_fragment(self) -> None:
        """Fragment tokens are dropped, leaving the bare path."""
        assert (
            strip_recovery_params("/reset-password#access_token=AT&refresh_token=RT&type=recovery")
            == "/reset-password"
        )

    def test_keeps_origin(self) -> None:
        """Absolute URLs keep scheme and host."""
        assert (
            strip_recovery_params("https://larmex.example/reset-password?code=abc")
            == "https://larmex.example/reset-password"
        )

    def test_has_recovery_params(self) -> None:
        """Detects any one-time parameter in query or fragment."""
        assert has_recovery_params("/reset-password?code=abc")
        assert has_recovery_params("/reset-password#refresh_token=RT")
        assert has_recovery_params("/reset-password?token_hash=th")
        assert not has_recovery_params("/reset-password?tab=login")
        assert not has_recovery_params("/reset-password")

    def test_has_recovery_params_blank_values(self) -> None:
        """A credential key with no value still counts."""
        assert has_recovery_params("/reset-password?token_hash=&type=recovery")
        assert has_recovery_params("/reset-password#access_token")
