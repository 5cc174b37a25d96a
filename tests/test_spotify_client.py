"""Tests for the Spotify playback client against a mocked HTTP transport."""

import base64
import json
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio
from pydantic import SecretStr

from shared_queue.config.settings import SpotifySettings
from shared_queue.domain.shared.exceptions import (
    NotFoundError,
    ProviderRejectedError,
    RemoteUnavailableError,
    UnauthorizedError,
)
from shared_queue.infrastructure.spotify.client import SpotifyPlaybackClient

API = "https://api.test/v1"
ACCOUNTS = "https://accounts.test/api/token"

TRACK_ITEM = {
    "id": "xyz",
    "name": "Song",
    "artists": [{"name": "Band"}, {"name": "Guest"}],
    "duration_ms": 200_000,
    "album": {
        "images": [
            {"url": "https://img/large.jpg"},
            {"url": "https://img/medium.jpg"},
            {"url": "https://img/small.jpg"},
        ]
    },
}


class Recorder:
    """Collects requests and answers them with a queued response."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.response = httpx.Response(204)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def recorder():
    return Recorder()


@pytest_asyncio.fixture
async def client(recorder):
    settings = SpotifySettings(
        client_id="cid",
        client_secret=SecretStr("secret"),
        redirect_uri="http://localhost:8080/",
        api_base_url=API,
        accounts_url=ACCOUNTS,
    )
    http = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    yield SpotifyPlaybackClient(settings, http_client=http)
    await http.aclose()


class TestStatusMapping:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "error"),
        [
            (401, UnauthorizedError),
            (404, NotFoundError),
            (429, RemoteUnavailableError),
            (500, RemoteUnavailableError),
            (503, RemoteUnavailableError),
            (400, ProviderRejectedError),
            (403, ProviderRejectedError),
        ],
    )
    async def test_error_statuses(self, client, recorder, status, error):
        recorder.response = httpx.Response(status, json={"error": {"status": status}})

        with pytest.raises(error):
            await client.get_account_id("tok")

    @pytest.mark.asyncio
    async def test_transport_error_is_retryable(self, client, recorder):
        recorder.response = httpx.ConnectError("connection refused")

        with pytest.raises(RemoteUnavailableError):
            await client.get_account_id("tok")

    @pytest.mark.asyncio
    async def test_rejected_keeps_status_code(self, client, recorder):
        recorder.response = httpx.Response(403)

        with pytest.raises(ProviderRejectedError) as exc_info:
            await client.start_track("tok", "xyz", None)

        assert exc_info.value.status_code == 403


class TestPlayback:
    @pytest.mark.asyncio
    async def test_currently_playing_parses_track(self, client, recorder):
        recorder.response = httpx.Response(
            200, json={"is_playing": True, "progress_ms": 50_000, "item": TRACK_ITEM}
        )

        playing = await client.get_currently_playing("tok")

        assert recorder.last.url == f"{API}/me/player"
        assert recorder.last.headers["Authorization"] == "Bearer tok"
        assert playing.is_playing is True
        assert playing.track.id == "xyz"
        assert playing.track.artist == "Band"
        assert playing.track.cover_url == "https://img/medium.jpg"
        assert playing.track.progress_ms == 50_000
        assert playing.remaining_ms == 150_000

    @pytest.mark.asyncio
    async def test_no_content_means_no_player(self, client, recorder):
        recorder.response = httpx.Response(204)

        with pytest.raises(NotFoundError):
            await client.get_currently_playing("tok")

    @pytest.mark.asyncio
    async def test_player_without_item_means_no_player(self, client, recorder):
        recorder.response = httpx.Response(200, json={"is_playing": False, "item": None})

        with pytest.raises(NotFoundError):
            await client.get_currently_playing("tok")

    @pytest.mark.asyncio
    async def test_start_track_sends_uri_and_device(self, client, recorder):
        recorder.response = httpx.Response(204)

        await client.start_track("tok", "xyz", "device-1")

        request = recorder.last
        assert request.method == "PUT"
        assert request.url.path == "/v1/me/player/play"
        assert request.url.params["device_id"] == "device-1"
        assert json.loads(request.content) == {"uris": ["spotify:track:xyz"]}

    @pytest.mark.asyncio
    async def test_start_track_without_device_omits_param(self, client, recorder):
        await client.start_track("tok", "xyz", None)

        assert "device_id" not in recorder.last.url.params

    @pytest.mark.asyncio
    async def test_set_device(self, client, recorder):
        await client.set_device("tok", "device-1", resume_playing=True)

        assert recorder.last.url.path == "/v1/me/player"
        assert json.loads(recorder.last.content) == {"device_ids": ["device-1"], "play": True}

    @pytest.mark.asyncio
    async def test_track_metadata_with_sparse_payload(self, client, recorder):
        recorder.response = httpx.Response(
            200, json={"id": "abc", "name": "", "artists": [], "duration_ms": 1000, "album": {}}
        )

        track = await client.get_track_metadata("tok", "abc")

        assert recorder.last.url.path == "/v1/tracks/abc"
        assert (track.name, track.artist, track.cover_url) == ("Unknown", "Unknown", None)
        assert track.progress_ms == 0


class TestAuth:
    @pytest.mark.asyncio
    async def test_exchange_auth_code(self, client, recorder):
        recorder.response = httpx.Response(
            200, json={"access_token": "a1", "refresh_token": "r1", "expires_in": 3600}
        )

        grant = await client.exchange_auth_code("code123", redirect_path="create")

        request = recorder.last
        assert str(request.url) == ACCOUNTS
        expected_auth = base64.b64encode(b"cid:secret").decode()
        assert request.headers["Authorization"] == f"Basic {expected_auth}"
        form = parse_qs(request.content.decode())
        assert form == {
            "grant_type": ["authorization_code"],
            "code": ["code123"],
            "redirect_uri": ["http://localhost:8080/create"],
        }
        assert (grant.access_token, grant.refresh_token, grant.expires_in_seconds) == ("a1", "r1", 3600)

    @pytest.mark.asyncio
    async def test_refresh_keeps_old_refresh_token(self, client, recorder):
        recorder.response = httpx.Response(200, json={"access_token": "a2", "expires_in": 3600})

        grant = await client.refresh_credentials("r1")

        assert parse_qs(recorder.last.content.decode())["grant_type"] == ["refresh_token"]
        assert grant.refresh_token == "r1"
        assert grant.access_token == "a2"

    @pytest.mark.asyncio
    async def test_refresh_rejected(self, client, recorder):
        recorder.response = httpx.Response(400, json={"error": "invalid_grant"})

        with pytest.raises(ProviderRejectedError):
            await client.refresh_credentials("revoked")

    @pytest.mark.asyncio
    async def test_account_id(self, client, recorder):
        recorder.response = httpx.Response(200, json={"id": "U1", "display_name": "Owner"})

        assert await client.get_account_id("tok") == "U1"


@pytest.mark.asyncio
async def test_close_leaves_injected_client_open(client):
    await client.close()
    assert client._client is not None
