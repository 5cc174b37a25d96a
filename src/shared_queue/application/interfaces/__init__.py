"""Port interfaces implemented by infrastructure adapters."""

from shared_queue.application.interfaces.playback_client import (
    CurrentlyPlaying,
    PlaybackClient,
    TokenGrant,
)

__all__ = [
    "PlaybackClient",
    "CurrentlyPlaying",
    "TokenGrant",
]
