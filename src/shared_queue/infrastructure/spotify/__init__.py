"""Streaming provider adapter."""

from shared_queue.infrastructure.spotify.client import SpotifyPlaybackClient

__all__ = ["SpotifyPlaybackClient"]
