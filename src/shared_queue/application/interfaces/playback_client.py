"""Port interface for the streaming provider's playback and auth operations."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict

from shared_queue.domain.session.entities import Track
from shared_queue.domain.shared.types import NonEmptyStr, NonNegativeInt


class TokenGrant(BaseModel):
    """Credentials returned by an auth-code exchange or a refresh."""

    model_config = ConfigDict(frozen=True)

    access_token: NonEmptyStr
    refresh_token: str
    expires_in_seconds: NonNegativeInt


class CurrentlyPlaying(BaseModel):
    """The provider's view of the player."""

    model_config = ConfigDict(frozen=True)

    track: Track
    progress_ms: NonNegativeInt
    is_playing: bool

    @property
    def remaining_ms(self) -> int:
        return max(0, self.track.duration_ms - self.progress_ms)


class PlaybackClient(ABC):
    """Stateless facade over the streaming provider.

    Every call fails with `UnauthorizedError` (expired or invalid token),
    `RemoteUnavailableError` (network, rate limit, 5xx) or `NotFoundError`
    (no such track, device or player); other rejections raise
    `ProviderRejectedError`.
    """

    @abstractmethod
    async def get_currently_playing(self, access_token: str) -> CurrentlyPlaying:
        """Current track with ``track.progress_ms`` set to the reported progress."""
        ...

    @abstractmethod
    async def start_track(self, access_token: str, track_id: str, device_id: str | None) -> None:
        ...

    @abstractmethod
    async def set_device(self, access_token: str, device_id: str, resume_playing: bool) -> None:
        ...

    @abstractmethod
    async def exchange_auth_code(self, code: str, redirect_path: str = "") -> TokenGrant:
        ...

    @abstractmethod
    async def refresh_credentials(self, refresh_token: str) -> TokenGrant:
        """Refresh an access token; the grant keeps ``refresh_token`` if the provider omits one."""
        ...

    @abstractmethod
    async def get_account_id(self, access_token: str) -> str:
        ...

    @abstractmethod
    async def get_track_metadata(self, access_token: str, track_id: str) -> Track:
        ...
