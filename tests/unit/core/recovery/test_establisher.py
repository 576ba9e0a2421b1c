"""Tests for the session establisher."""

from __future__ import annotations

import pytest

from larmex.core.recovery.credentials import AuthorizationCode, ImplicitTokens, TokenHash
from larmex.core.recovery.establisher import SessionEstablisher
from larmex.core.recovery.location import InMemoryPageLocation
from larmex.core.recovery.types import InvalidReason, RecoverySessionState
from tests.fixtures.identity import RECOVERY_SESSION, FakeIdentityProvider


class TestSessionEstablisher:
    """Tests for SessionEstablisher.establish."""

    @pytest.mark.asyncio
    async def test_token_hash_redeemed(self, fake_identity: FakeIdentityProvider) -> None:
        """A fresh token hash is verified and the URL cleaned."""
        fake_identity.valid_token_hashes.add("th_1")
        location = InMemoryPageLocation("/reset-password?token_hash=th_1&type=recovery")

        state = await SessionEstablisher(fake_identity, location).establish(
            TokenHash(token_hash="th_1")
        )

        assert state == RecoverySessionState.valid()
        assert fake_identity.calls == ["verify_recovery_token_hash"]
        assert location.href == "/reset-password"

    @pytest.mark.asyncio
    async def test_authorization_code_exchanged(
        self, fake_identity: FakeIdentityProvider
    ) -> None:
        """A fresh code is exchanged for a session."""
        fake_identity.valid_codes.add("abc")
        location = InMemoryPageLocation("/reset-password?code=abc")

        state = await SessionEstablisher(fake_identity, location).establish(
            AuthorizationCode(code="abc")
        )

        assert state.is_valid
        assert fake_identity.calls == ["exchange_authorization_code"]
        assert location.href == "/reset-password"

    @pytest.mark.asyncio
    async def test_implicit_tokens_set(self, fake_identity: FakeIdentityProvider) -> None:
        """A valid token pair becomes the session."""
        fake_identity.valid_token_pairs.add(("AT", "RT"))
        location = InMemoryPageLocation(
            "/reset-password#access_token=AT&refresh_token=RT&type=recovery"
        )

        state = await SessionEstablisher(fake_identity, location).establish(
            ImplicitTokens(access_token="AT", refresh_token="RT")
        )

        assert state.is_valid
        assert fake_identity.calls == ["set_session"]
        assert location.href == "/reset-password"

    @pytest.mark.asyncio
    async def test_existing_session_without_credentials(
        self, fake_identity: FakeIdentityProvider
    ) -> None:
        """With no credentials, an existing session is enough."""
        fake_identity.session = RECOVERY_SESSION
        location = InMemoryPageLocation("/reset-password")

        state = await SessionEstablisher(fake_identity, location).establish(None)

        assert state.is_valid
        assert fake_identity.calls == ["get_current_session"]
        assert location.replacements == []

    @pytest.mark.asyncio
    async def test_rejected_credential_falls_through_to_existing_session(
        self, fake_identity: FakeIdentityProvider
    ) -> None:
        """A code the provider already consumed still resolves via the existing session."""
        fake_identity.session = RECOVERY_SESSION
        location = InMemoryPageLocation("/reset-password?code=used")

        state = await SessionEstablisher(fake_identity, location).establish(
            AuthorizationCode(code="used")
        )

        assert state.is_valid
        assert fake_identity.calls == ["exchange_authorization_code", "get_current_session"]
        assert location.href == "/reset-password"

    @pytest.mark.asyncio
    async def test_expired_credential_is_invalid(
        self, fake_identity: FakeIdentityProvider
    ) -> None:
        """Exhausting every strategy yields invalid_or_expired."""
        location = InMemoryPageLocation("/reset-password?token_hash=old&type=recovery")

        state = await SessionEstablisher(fake_identity, location).establish(
            TokenHash(token_hash="old")
        )

        assert state == RecoverySessionState.invalid(InvalidReason.INVALID_OR_EXPIRED)
        assert location.href == "/reset-password?token_hash=old&type=recovery"

    @pytest.mark.asyncio
    async def test_token_hash_redeemed_only_once(
        self, fake_identity: FakeIdentityProvider
    ) -> None:
        """A replayed token hash is rejected the second time."""
        fake_identity.valid_token_hashes.add("th_1")
        credentials = TokenHash(token_hash="th_1")

        first = await SessionEstablisher(
            fake_identity, InMemoryPageLocation("/reset-password")
        ).establish(credentials)
        fake_identity.session = None
        second = await SessionEstablisher(
            fake_identity, InMemoryPageLocation("/reset-password")
        ).establish(credentials)

        assert first.is_valid
        assert not second.is_valid
