"""Spotify Web API implementation of the playback client port."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from shared_queue.application.interfaces.playback_client import (
    CurrentlyPlaying,
    PlaybackClient,
    TokenGrant,
)
from shared_queue.config.settings import SpotifySettings
from shared_queue.domain.session.entities import Track
from shared_queue.domain.shared.constants import ProviderConstants
from shared_queue.domain.shared.exceptions import (
    NotFoundError,
    ProviderRejectedError,
    RemoteUnavailableError,
    UnauthorizedError,
)
from shared_queue.domain.shared.messages import ErrorMessages

logger = logging.getLogger(__name__)

_RETRYABLE_STATUSES = {429, 500, 502, 503, 504}


def _track_uri(track_id: str) -> str:
    if ":" in track_id:
        return track_id
    return f"{ProviderConstants.TRACK_URI_PREFIX}{track_id}"


def _cover_url(album: dict[str, Any] | None) -> str | None:
    images = (album or {}).get("images") or []
    if not images:
        return None
    # Index 1 is the medium size; fall back to whatever exists.
    return (images[1] if len(images) > 1 else images[0]).get("url")


def _parse_track(item: dict[str, Any], progress_ms: int = 0) -> Track:
    artists = item.get("artists") or []
    duration_ms = int(item.get("duration_ms") or 0)
    return Track(
        id=item["id"],
        name=item.get("name") or "Unknown",
        artist=(artists[0].get("name") if artists else None) or "Unknown",
        duration_ms=duration_ms,
        progress_ms=min(progress_ms, duration_ms),
        cover_url=_cover_url(item.get("album")),
    )


class SpotifyPlaybackClient(PlaybackClient):
    """Thin httpx wrapper translating HTTP outcomes into domain errors."""

    def __init__(
        self,
        settings: SpotifySettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or SpotifySettings()
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.request_timeout_s)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ---- HTTP plumbing ----

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._get_client().request(method, url, **kwargs)
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            logger.warning("Request to %s %s failed: %r", method, url, exc)
            raise RemoteUnavailableError(ErrorMessages.PROVIDER_UNREACHABLE.format(error=exc)) from exc

        self._raise_for_status(response)
        return response

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return

        logger.debug("Provider responded %d for %s: %s", status, response.request.url, response.text)
        if status == 401:
            raise UnauthorizedError()
        if status == 404:
            raise NotFoundError("Resource", str(response.request.url.path))
        if status in _RETRYABLE_STATUSES or status >= 500:
            raise RemoteUnavailableError(ErrorMessages.PROVIDER_STATUS.format(status=status))
        raise ProviderRejectedError(status)

    async def _api(self, method: str, path: str, access_token: str, **kwargs: Any) -> httpx.Response:
        headers = {"Authorization": f"Bearer {access_token}"}
        return await self._request(
            method, f"{self._settings.api_base_url}{path}", headers=headers, **kwargs
        )

    async def _token(self, data: dict[str, str]) -> dict[str, Any]:
        auth = (self._settings.client_id, self._settings.client_secret.get_secret_value())
        response = await self._request("POST", self._settings.accounts_url, data=data, auth=auth)
        return response.json()

    # ---- Playback ----

    async def get_currently_playing(self, access_token: str) -> CurrentlyPlaying:
        response = await self._api("GET", "/me/player", access_token)
        if response.status_code == 204 or not response.content:
            raise NotFoundError("Player", "me", message=ErrorMessages.NO_ACTIVE_PLAYER)

        payload = response.json()
        item = payload.get("item")
        if not item:
            raise NotFoundError("Player", "me", message=ErrorMessages.NO_ACTIVE_PLAYER)

        progress_ms = int(payload.get("progress_ms") or 0)
        track = _parse_track(item, progress_ms)
        return CurrentlyPlaying(
            track=track,
            progress_ms=track.progress_ms,
            is_playing=bool(payload.get("is_playing")),
        )

    async def start_track(self, access_token: str, track_id: str, device_id: str | None) -> None:
        params = {"device_id": device_id} if device_id else None
        await self._api(
            "PUT",
            "/me/player/play",
            access_token,
            params=params,
            json={"uris": [_track_uri(track_id)]},
        )

    async def set_device(self, access_token: str, device_id: str, resume_playing: bool) -> None:
        await self._api(
            "PUT",
            "/me/player",
            access_token,
            json={"device_ids": [device_id], "play": resume_playing},
        )

    async def get_track_metadata(self, access_token: str, track_id: str) -> Track:
        response = await self._api("GET", f"/tracks/{track_id}", access_token)
        return _parse_track(response.json())

    # ---- Auth ----

    async def get_account_id(self, access_token: str) -> str:
        response = await self._api("GET", "/me", access_token)
        return response.json()["id"]

    async def exchange_auth_code(self, code: str, redirect_path: str = "") -> TokenGrant:
        payload = await self._token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self._settings.redirect_uri + redirect_path,
            }
        )
        return TokenGrant(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token") or "",
            expires_in_seconds=int(payload.get("expires_in") or 0),
        )

    async def refresh_credentials(self, refresh_token: str) -> TokenGrant:
        payload = await self._token(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )
        return TokenGrant(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token") or refresh_token,
            expires_in_seconds=int(payload.get("expires_in") or 0),
        )
