from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

# ============================================================================
# Database Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def database(tmp_path):
    """Create a file-backed SQLite database in a temporary directory."""
    from shared_queue.infrastructure.persistence.database import Database

    db = Database(f"sqlite:///{tmp_path / 'shared_queue.db'}")
    await db.initialize()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def session_store(database):
    """Create a session document store over the temporary database."""
    from shared_queue.infrastructure.persistence.session_store import SQLiteSessionStore

    return SQLiteSessionStore(database)


@pytest_asyncio.fixture
async def session_repository(session_store):
    """Create a session repository over the document store."""
    from shared_queue.infrastructure.persistence.repositories.session_repository import (
        DocumentSessionRepository,
    )

    return DocumentSessionRepository(session_store)


# ============================================================================
# Clock
# ============================================================================


class FakeClock:
    """Settable Unix-seconds clock."""

    def __init__(self, now: int = 1_700_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# ============================================================================
# Domain Entity Fixtures
# ============================================================================


def make_track(track_id: str = "xyz", duration_ms: int = 180_000, progress_ms: int = 0, **kwargs):
    from shared_queue.domain.session.entities import Track

    return Track(
        id=track_id,
        name=kwargs.pop("name", f"Track {track_id}"),
        artist=kwargs.pop("artist", "Test Artist"),
        duration_ms=duration_ms,
        progress_ms=progress_ms,
        **kwargs,
    )


def make_session(
    passcode: str = "Abc23456",
    owner: str = "owner-member",
    account: str = "U1",
    access_token: str | None = "access-1",
    acquired_at: int = 1_700_000_000,
    expires_in_seconds: int = 3600,
    **kwargs,
):
    from shared_queue.domain.session.entities import Credentials, Session

    session = Session.new(
        passcode=passcode,
        owner_member_id=owner,
        external_account_id=account,
        credentials=Credentials(
            access_token=access_token,
            refresh_token="refresh-1",
            acquired_at=acquired_at,
            expires_in_seconds=expires_in_seconds,
        ),
    )
    for key, value in kwargs.items():
        setattr(session, key, value)
    return session


@pytest.fixture
def track_factory():
    return make_track


@pytest.fixture
def session_factory():
    return make_session


@pytest.fixture
def sample_track():
    """Create a sample track for testing."""
    return make_track()


@pytest.fixture
def sample_session():
    """Create an active session owned by account U1."""
    return make_session()


# ============================================================================
# Provider Fakes
# ============================================================================


@pytest.fixture
def mock_client():
    """Playback client double with every port method as an AsyncMock."""
    from shared_queue.application.interfaces.playback_client import PlaybackClient, TokenGrant

    client = AsyncMock(spec=PlaybackClient)
    client.exchange_auth_code.return_value = TokenGrant(
        access_token="access-new", refresh_token="refresh-new", expires_in_seconds=3600
    )
    client.refresh_credentials.return_value = TokenGrant(
        access_token="access-refreshed", refresh_token="refresh-1", expires_in_seconds=3600
    )
    client.get_account_id.return_value = "U1"
    client.get_track_metadata.side_effect = lambda token, track_id: make_track(track_id)
    client.start_track.return_value = None
    client.set_device.return_value = None
    return client
