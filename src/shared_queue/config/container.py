"""Dependency Injection Container

Manages the service's dependency graph, providing lazy initialization and
lifecycle management for the store, provider client and application services.
Components are created on-demand and cached for reuse.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from ..application.interfaces.playback_client import PlaybackClient
    from ..application.services.credential_guard import CredentialGuard
    from ..application.services.playback_scheduler import PlaybackScheduler
    from ..application.services.queue_coordinator import QueueCoordinator
    from ..domain.session.repository import SessionRepository, SessionStore
    from ..infrastructure.persistence.database import Database
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    Components are lazily initialized when first accessed. Tests may pass a
    ready-made ``_playback_client`` to swap the provider out.
    """

    settings: Settings

    # Persistence layer
    _database: Database | None = None
    _session_store: SessionStore | None = None
    _session_repository: SessionRepository | None = None

    # Infrastructure adapters
    _playback_client: PlaybackClient | None = None

    # Application services
    _credential_guard: CredentialGuard | None = None
    _scheduler: PlaybackScheduler | None = None
    _coordinator: QueueCoordinator | None = None

    # === Database ===

    @property
    def database(self) -> Database:
        """Get the database connection manager."""
        if self._database is None:
            from ..infrastructure.persistence.database import Database

            self._database = Database(self.settings.database.url, settings=self.settings.database)
        return self._database

    # === Repositories ===

    @property
    def session_store(self) -> SessionStore:
        """Get the session document store."""
        if self._session_store is None:
            from ..infrastructure.persistence.session_store import SQLiteSessionStore

            self._session_store = SQLiteSessionStore(self.database)
        return self._session_store

    @property
    def session_repository(self) -> SessionRepository:
        """Get the session repository."""
        if self._session_repository is None:
            from ..infrastructure.persistence.repositories.session_repository import (
                DocumentSessionRepository,
            )

            self._session_repository = DocumentSessionRepository(self.session_store)
        return self._session_repository

    # === Infrastructure Adapters ===

    @property
    def playback_client(self) -> PlaybackClient:
        """Get the streaming provider client."""
        if self._playback_client is None:
            from ..infrastructure.spotify.client import SpotifyPlaybackClient

            self._playback_client = SpotifyPlaybackClient(self.settings.spotify)
        return self._playback_client

    # === Application Services ===

    @property
    def credential_guard(self) -> CredentialGuard:
        if self._credential_guard is None:
            from ..application.services.credential_guard import CredentialGuard

            self._credential_guard = CredentialGuard(self.playback_client)
        return self._credential_guard

    @property
    def scheduler(self) -> PlaybackScheduler:
        if self._scheduler is None:
            from ..application.services.playback_scheduler import PlaybackScheduler

            self._scheduler = PlaybackScheduler(self.playback_client, self.settings.playback)
        return self._scheduler

    @property
    def coordinator(self) -> QueueCoordinator:
        """Get the queue coordinator, bound to the scheduler as its driver."""
        if self._coordinator is None:
            from ..application.services.queue_coordinator import QueueCoordinator

            self._coordinator = QueueCoordinator(
                session_repository=self.session_repository,
                playback_client=self.playback_client,
                credential_guard=self.credential_guard,
                scheduler=self.scheduler,
                passcode_settings=self.settings.passcode,
            )
        return self._coordinator

    # === Lifecycle ===

    async def initialize(self) -> None:
        """Initialize async resources and re-arm timers lost by a restart."""
        await self.database.initialize()
        # The scheduler needs its driver before any recovered check fires.
        _ = self.coordinator
        await self.scheduler.recover_all(self.session_repository)

    async def shutdown(self) -> None:
        """Stop timers and release resources."""
        if self._scheduler is not None:
            await self._scheduler.shutdown()

        close = getattr(self._playback_client, "close", None)
        if close is not None:
            try:
                await close()
            except Exception as exc:
                logger.warning("Failed closing playback client: %r", exc)

        if self._database is not None:
            await self._database.close()


def create_container(settings: Settings) -> Container:
    """Create a new dependency injection container."""
    return Container(settings)
