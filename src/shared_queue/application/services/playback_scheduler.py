"""Playback Scheduler - per-session track-end timers with remote re-verification."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from ...domain.shared.exceptions import (
    DomainError,
    InactiveSessionError,
    NotFoundError,
    ProviderRejectedError,
    RefreshFailedError,
    RemoteUnavailableError,
    SessionNotFoundError,
    UnauthorizedError,
)
from ...domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ...config.settings import PlaybackSettings
    from ...domain.session.repository import SessionRepository
    from ..interfaces.playback_client import PlaybackClient

logger = logging.getLogger(__name__)


class PlaybackDriver(Protocol):
    """The session-side operations a firing timer needs."""

    async def fresh_access_token(self, passcode: str) -> str | None:
        """Token usable for a provider poll, refreshed and persisted if needed.

        Returns None when the session is inactive.
        """
        ...

    async def advance_to_next(self, passcode: str, from_track_id: str | None = None) -> Any:
        ...

    async def resume_stalled(self, passcode: str) -> Any:
        """Start the current track again if a previous start left it stalled."""
        ...

    async def mark_stopped(self, passcode: str) -> None:
        ...


@dataclass(frozen=True)
class PendingCheck:
    """What an armed timer will do when it fires.

    ``restart`` timers retry starting the stalled current track instead of
    polling the provider.
    """

    track_id: str | None
    delay_ms: int
    restart: bool = False


@dataclass
class _Timer:
    task: asyncio.Task[None]
    check: PendingCheck


class PlaybackScheduler:
    """Keeps at most one pending playback check per passcode.

    A check fires shortly before the expected end of the track, polls the
    provider and either advances the queue or re-arms itself with the freshly
    observed remaining time. Callback failures are logged and turned into a
    re-arm with backoff; they never propagate.
    """

    def __init__(self, client: PlaybackClient, settings: PlaybackSettings | None = None) -> None:
        if settings is None:
            from ...config.settings import PlaybackSettings

            settings = PlaybackSettings()
        self._client = client
        self._settings = settings
        self._driver: PlaybackDriver | None = None
        self._timers: dict[str, _Timer] = {}
        self._failures: dict[str, int] = {}

    def bind(self, driver: PlaybackDriver) -> None:
        self._driver = driver

    def _require_driver(self) -> PlaybackDriver:
        if self._driver is None:
            raise RuntimeError("Scheduler has no driver. Call bind() first.")
        return self._driver

    # ---- Timer table ----

    def is_armed(self, passcode: str) -> bool:
        return passcode in self._timers

    def pending(self, passcode: str) -> PendingCheck | None:
        timer = self._timers.get(passcode)
        return timer.check if timer else None

    def armed_sessions(self) -> list[str]:
        return list(self._timers)

    def arm(self, passcode: str, track_id: str | None, remaining_ms: int) -> int:
        """Schedule a check ``guard_band_ms`` before the track is expected to end.

        Replaces any timer already armed for the passcode. Returns the delay in ms.
        """
        delay_ms = max(0, remaining_ms - self._settings.guard_band_ms)
        self._failures.pop(passcode, None)
        self._schedule(passcode, track_id, delay_ms)
        logger.info(LogTemplates.TIMER_ARMED, delay_ms, track_id, passcode)
        return delay_ms

    def cancel(self, passcode: str, *, reset_failures: bool = True) -> bool:
        """Drop the passcode's timer.

        With ``reset_failures=False`` the consecutive failure count survives, so a
        retry scheduled right after still counts towards ``max_check_failures``.
        """
        if reset_failures:
            self._failures.pop(passcode, None)
        cancelled = self._drop(passcode)
        if cancelled:
            logger.debug(LogTemplates.TIMER_CANCELLED, passcode)
        return cancelled

    def _schedule(
        self, passcode: str, track_id: str | None, delay_ms: int, restart: bool = False
    ) -> None:
        self._drop(passcode)
        task = asyncio.create_task(
            self._fire(passcode, track_id, delay_ms, restart), name=f"playback-check-{passcode}"
        )
        self._timers[passcode] = _Timer(task=task, check=PendingCheck(track_id, delay_ms, restart))
        task.add_done_callback(lambda t: self._forget(passcode, t))

    def _drop(self, passcode: str) -> bool:
        timer = self._timers.pop(passcode, None)
        if timer is None:
            return False
        # A firing check may re-arm or cancel its own session; it must not cancel itself.
        if timer.task is not asyncio.current_task():
            timer.task.cancel()
        return True

    def _forget(self, passcode: str, task: asyncio.Task[None]) -> None:
        timer = self._timers.get(passcode)
        if timer is not None and timer.task is task:
            del self._timers[passcode]

    async def _fire(self, passcode: str, track_id: str | None, delay_ms: int, restart: bool) -> None:
        await asyncio.sleep(delay_ms / 1000)
        try:
            if restart:
                await self.restart_current(passcode, track_id)
            else:
                await self.check_and_advance(passcode, track_id)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error in playback check for session %s", passcode)
            await self._retry_later(passcode, track_id, exc, restart=restart)

    # ---- Checks ----

    async def check_and_advance(self, passcode: str, track_id: str | None = None) -> None:
        """Poll the provider and decide whether to advance, re-arm or stop."""
        driver = self._require_driver()
        logger.debug(LogTemplates.CHECK_STARTED, track_id, passcode)

        try:
            access_token = await driver.fresh_access_token(passcode)
        except SessionNotFoundError:
            logger.info(LogTemplates.CHECK_SESSION_GONE, passcode)
            self.cancel(passcode)
            return
        except RefreshFailedError as exc:
            logger.warning(LogTemplates.CHECK_DEFINITIVE_FAILURE, passcode, exc.message)
            await self._stop(passcode)
            return
        except RemoteUnavailableError as exc:
            await self._retry_later(passcode, track_id, exc)
            return

        if access_token is None:
            logger.info(LogTemplates.CHECK_SESSION_GONE, passcode)
            self.cancel(passcode)
            return

        try:
            playing = await self._client.get_currently_playing(access_token)
        except NotFoundError as exc:
            logger.warning(LogTemplates.CHECK_DEFINITIVE_FAILURE, passcode, exc.message)
            await self._stop(passcode)
            return
        except (RemoteUnavailableError, UnauthorizedError, ProviderRejectedError) as exc:
            await self._retry_later(passcode, track_id, exc)
            return

        self._failures.pop(passcode, None)
        remaining_ms = playing.remaining_ms

        if not playing.is_playing:
            logger.info(LogTemplates.CHECK_STOPPED_REMOTELY, playing.track.id, passcode)
            await self._advance(passcode, track_id)
        elif remaining_ms < self._settings.near_end_threshold_ms:
            logger.info(
                LogTemplates.CHECK_NEAR_END,
                self._settings.near_end_threshold_ms,
                playing.track.id,
                passcode,
            )
            await self._advance(passcode, track_id)
        else:
            logger.info(LogTemplates.CHECK_STILL_PLAYING, playing.track.id, passcode, remaining_ms)
            self.arm(passcode, track_id, remaining_ms)

    async def _advance(self, passcode: str, track_id: str | None) -> None:
        driver = self._require_driver()
        try:
            await driver.advance_to_next(passcode, from_track_id=track_id)
        except (SessionNotFoundError, InactiveSessionError):
            logger.info(LogTemplates.CHECK_SESSION_GONE, passcode)
            self.cancel(passcode)
        except RemoteUnavailableError as exc:
            # The queue already moved on; retry starting the new current track, not the poll.
            await self._retry_later(passcode, None, exc, restart=True)
        except DomainError as exc:
            # The coordinator left the session stalled; a status poll or play() resumes it.
            logger.warning(LogTemplates.TRACK_START_FAILED, track_id, passcode, exc.message)

    async def restart_current(self, passcode: str, track_id: str | None = None) -> None:
        """Retry starting a stalled current track, backing off while the provider is down.

        Gives up after ``max_check_failures`` consecutive attempts and marks the
        session stopped, as a failing poll does.
        """
        driver = self._require_driver()
        try:
            await driver.resume_stalled(passcode)
        except (SessionNotFoundError, InactiveSessionError):
            logger.info(LogTemplates.CHECK_SESSION_GONE, passcode)
            self.cancel(passcode)
        except RemoteUnavailableError as exc:
            await self._retry_later(passcode, track_id, exc, restart=True)
        except DomainError as exc:
            logger.warning(LogTemplates.TRACK_START_FAILED, track_id, passcode, exc.message)
            await self._stop(passcode)

    async def _retry_later(
        self, passcode: str, track_id: str | None, exc: Exception, restart: bool = False
    ) -> None:
        failures = self._failures.get(passcode, 0) + 1
        self._failures[passcode] = failures
        max_failures = self._settings.max_check_failures
        logger.warning(LogTemplates.CHECK_TRANSIENT_FAILURE, passcode, failures, max_failures, exc)

        if failures >= max_failures:
            logger.error(LogTemplates.CHECK_GAVE_UP, passcode, failures)
            await self._stop(passcode)
            return

        if restart:
            logger.info(LogTemplates.RESTART_SCHEDULED, passcode, self._settings.retry_backoff_ms)
        self._schedule(passcode, track_id, self._settings.retry_backoff_ms, restart=restart)

    async def _stop(self, passcode: str) -> None:
        self.cancel(passcode)
        try:
            await self._require_driver().mark_stopped(passcode)
        except DomainError as exc:
            logger.warning("Unable to mark session %s stopped: %s", passcode, exc.message)

    # ---- Lifecycle ----

    async def recover_all(self, repository: SessionRepository) -> int:
        """Re-arm an immediate check for every session persisted as playing.

        Covers timers lost when the process restarted.
        """
        recovered = 0
        async for session in repository.iter_playing():
            if not session.is_active or session.current_track is None:
                logger.info(LogTemplates.RECOVERY_SKIPPED, session.passcode)
                continue
            self._failures.pop(session.passcode, None)
            self._schedule(session.passcode, session.current_track_id, 0)
            recovered += 1

        logger.info(LogTemplates.RECOVERY_STARTED, recovered)
        return recovered

    async def shutdown(self) -> None:
        timers = list(self._timers.values())
        self._timers.clear()
        self._failures.clear()
        for timer in timers:
            timer.task.cancel()
        if timers:
            await asyncio.gather(*(t.task for t in timers), return_exceptions=True)
        logger.info(LogTemplates.SCHEDULER_SHUTDOWN, len(timers))
