"""Unit tests for CredentialGuard token freshness handling."""

import pytest

from shared_queue.application.services.credential_guard import CredentialGuard
from shared_queue.domain.shared.exceptions import (
    ProviderRejectedError,
    RefreshFailedError,
    RemoteUnavailableError,
    UnauthorizedError,
)


@pytest.fixture
def guard(mock_client, clock):
    return CredentialGuard(mock_client, clock=clock)


class TestEnsureFresh:
    @pytest.mark.asyncio
    async def test_fresh_token_makes_no_remote_call(self, guard, mock_client, clock, session_factory):
        session = session_factory(acquired_at=clock.now - 100, expires_in_seconds=3600)

        assert await guard.ensure_fresh(session) is None

        mock_client.refresh_credentials.assert_not_called()
        assert session.access_token == "access-1"

    @pytest.mark.asyncio
    async def test_expired_token_refreshes_exactly_once(self, guard, mock_client, clock, session_factory):
        session = session_factory(acquired_at=clock.now - 3600, expires_in_seconds=3600)

        grant = await guard.ensure_fresh(session)

        mock_client.refresh_credentials.assert_awaited_once_with("refresh-1")
        assert grant.access_token == "access-refreshed"
        assert session.access_token == "access-refreshed"
        assert session.credentials.acquired_at == clock.now
        assert session.credentials.expires_in_seconds == 3600

    @pytest.mark.asyncio
    async def test_refreshed_session_is_fresh_afterwards(self, guard, mock_client, clock, session_factory):
        session = session_factory(acquired_at=clock.now - 7200, expires_in_seconds=3600)

        await guard.ensure_fresh(session)
        await guard.ensure_fresh(session)

        assert mock_client.refresh_credentials.await_count == 1
        assert guard.is_expired(session) is False

    @pytest.mark.asyncio
    async def test_keeps_refresh_token_when_grant_omits_it(self, guard, mock_client, clock, session_factory):
        from shared_queue.application.interfaces.playback_client import TokenGrant

        mock_client.refresh_credentials.return_value = TokenGrant(
            access_token="access-2", refresh_token="", expires_in_seconds=60
        )
        session = session_factory(acquired_at=0, expires_in_seconds=1)

        await guard.ensure_fresh(session)

        assert session.credentials.refresh_token == "refresh-1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [UnauthorizedError(), ProviderRejectedError(400)])
    async def test_rejected_refresh_raises_refresh_failed(self, guard, mock_client, session_factory, error):
        mock_client.refresh_credentials.side_effect = error
        session = session_factory(acquired_at=0, expires_in_seconds=1)

        with pytest.raises(RefreshFailedError) as exc_info:
            await guard.ensure_fresh(session)

        assert exc_info.value.recovery.value == "reauthenticate"
        assert session.access_token == "access-1"

    @pytest.mark.asyncio
    async def test_unreachable_provider_stays_retryable(self, guard, mock_client, session_factory):
        mock_client.refresh_credentials.side_effect = RemoteUnavailableError()
        session = session_factory(acquired_at=0, expires_in_seconds=1)

        with pytest.raises(RemoteUnavailableError):
            await guard.ensure_fresh(session)

    @pytest.mark.asyncio
    async def test_missing_refresh_token_fails_without_remote_call(self, guard, mock_client, session_factory):
        session = session_factory(acquired_at=0, expires_in_seconds=1)
        session.credentials.refresh_token = ""

        with pytest.raises(RefreshFailedError):
            await guard.ensure_fresh(session)

        mock_client.refresh_credentials.assert_not_called()
