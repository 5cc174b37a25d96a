"""Queue Coordinator - the session state machine.

Every read-modify-write happens inside ``SessionRepository.locked`` for the
passcode, including the provider calls made on the way, so an expiring timer
and a manual action on the same session are serialized.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from ...domain.session.entities import Credentials, Session, SessionSettings
from ...domain.session.value_objects import TrackUri, generate_member_id, generate_passcode
from ...domain.shared.exceptions import (
    DomainError,
    InactiveSessionError,
    InvalidOperationError,
    NotFoundError,
    NotOwnerError,
    PasscodeExhaustedError,
    ProviderRejectedError,
    RemoteUnavailableError,
    UnauthorizedError,
)
from ...domain.shared.messages import ErrorMessages, LogTemplates
from .coordinator_models import (
    AddTrackResult,
    CreateResult,
    JoinResult,
    PlaybackStatus,
    SessionView,
    VoteResult,
)

if TYPE_CHECKING:
    from ...config.settings import PasscodeSettings
    from ...domain.session.repository import SessionRepository
    from ..interfaces.playback_client import PlaybackClient, TokenGrant
    from .credential_guard import CredentialGuard
    from .playback_scheduler import PlaybackScheduler

logger = logging.getLogger(__name__)


@contextmanager
def _annotate(passcode: str | None, action: str) -> Iterator[None]:
    """Tag escaping domain errors with the session and action they came from."""
    try:
        yield
    except DomainError as exc:
        exc.with_context(passcode=passcode, action=action)
        raise


class QueueCoordinator:
    """Session lifecycle, queue mutation and vote/point bookkeeping."""

    def __init__(
        self,
        *,
        session_repository: SessionRepository,
        playback_client: PlaybackClient,
        credential_guard: CredentialGuard,
        scheduler: PlaybackScheduler,
        passcode_settings: PasscodeSettings | None = None,
        passcode_factory: Callable[[int], str] = generate_passcode,
    ) -> None:
        if passcode_settings is None:
            from ...config.settings import PasscodeSettings

            passcode_settings = PasscodeSettings()
        self._repo = session_repository
        self._client = playback_client
        self._guard = credential_guard
        self._scheduler = scheduler
        self._passcode_settings = passcode_settings
        self._passcode_factory = passcode_factory

        self._scheduler.bind(self)

    # ---- Helpers ----

    def _watching(self, passcode: str) -> bool:
        """Whether a track-end check (not a pending restart) is armed for the session."""
        pending = self._scheduler.pending(passcode)
        return pending is not None and not pending.restart

    def _view(self, session: Session) -> SessionView:
        return SessionView.of(session, timer_armed=self._watching(session.passcode))

    def _credentials_from(self, grant: TokenGrant, fallback_refresh_token: str = "") -> Credentials:
        return Credentials(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token or fallback_refresh_token,
            acquired_at=self._guard.now(),
            expires_in_seconds=grant.expires_in_seconds,
        )

    def _require_active(self, session: Session, member_id: str | None) -> None:
        if not session.is_active:
            raise InactiveSessionError(session.passcode, is_owner=session.is_owner(member_id))

    def _require_member(self, session: Session, member_id: str | None, action: str) -> str:
        if member_id is None or not session.is_member(member_id):
            raise InvalidOperationError(
                operation=action,
                current_state="not_a_member",
                message=ErrorMessages.NOT_A_MEMBER.format(member_id=member_id),
            )
        return member_id

    async def _refresh(self, session: Session) -> str:
        """Refresh credentials if stale and persist them before they are used."""
        if await self._guard.ensure_fresh(session) is not None:
            await self._repo.save(session)
        assert session.access_token is not None
        return session.access_token

    async def _authenticate(self, auth_code: str, redirect_path: str) -> tuple[TokenGrant, str]:
        try:
            grant = await self._client.exchange_auth_code(auth_code, redirect_path=redirect_path)
            account_id = await self._client.get_account_id(grant.access_token)
        except (UnauthorizedError, ProviderRejectedError) as exc:
            logger.warning("Authentication with provider failed: %s", exc.message)
            raise UnauthorizedError(ErrorMessages.AUTHENTICATION_FAILED) from exc
        return grant, account_id

    async def _generate_passcode(self) -> str:
        max_attempts = self._passcode_settings.max_attempts
        for attempt in range(1, max_attempts + 1):
            passcode = self._passcode_factory(self._passcode_settings.length)
            if not await self._repo.exists_passcode(passcode):
                logger.info(LogTemplates.PASSCODE_GENERATED, passcode)
                return passcode
            logger.debug(LogTemplates.PASSCODE_COLLISION, attempt)
        raise PasscodeExhaustedError(max_attempts)

    # ---- Queries ----

    async def get_state(self, passcode: str) -> SessionView:
        with _annotate(passcode, "get_state"):
            return self._view(await self._repo.load(passcode))

    async def require_owner(self, passcode: str, member_id: str | None) -> Session:
        """Load the session, failing with NotOwnerError unless ``member_id`` owns it."""
        with _annotate(passcode, "require_owner"):
            session = await self._repo.load(passcode)
            if not session.is_owner(member_id):
                raise NotOwnerError()
            return session

    # ---- Lifecycle ----

    async def create(self, auth_code: str) -> CreateResult:
        """Authenticate the owner and open a session, or reactivate their existing one."""
        with _annotate(None, "create"):
            logger.info(LogTemplates.SESSION_CREATING)
            grant, account_id = await self._authenticate(auth_code, "create")

            existing = await self._repo.find_by_external_account(account_id)
            if existing is not None:
                logger.info(LogTemplates.SESSION_EXISTING_FOUND, existing.passcode, account_id)
                async with self._repo.locked(existing.passcode) as session:
                    session.activate(
                        self._credentials_from(grant, session.credentials.refresh_token)
                    )
                    await self._repo.save(session)
                    return CreateResult(
                        session=self._view(session), member_id=session.owner, reactivated=True
                    )

            passcode = await self._generate_passcode()
            member_id = generate_member_id()
            session = Session.new(
                passcode=passcode,
                owner_member_id=member_id,
                external_account_id=account_id,
                credentials=self._credentials_from(grant),
            )
            await self._repo.create(session)
            return CreateResult(session=self._view(session), member_id=member_id)

    async def reactivate(
        self, passcode: str, member_id: str | None, auth_code: str
    ) -> CreateResult:
        """Re-authenticate the owner of an existing session.

        A changed or missing local member id takes over the owner's membership entry.
        """
        with _annotate(passcode, "reactivate"):
            grant, account_id = await self._authenticate(auth_code, "reactivate")

            async with self._repo.locked(passcode) as session:
                if session.owner_account != account_id:
                    raise NotOwnerError()

                session.activate(self._credentials_from(grant, session.credentials.refresh_token))
                member_id = member_id or generate_member_id()
                if member_id != session.owner:
                    previous = session.migrate_owner(member_id)
                    logger.info(LogTemplates.SESSION_OWNER_MIGRATED, passcode, previous, member_id)

                await self._repo.save(session)
                logger.info(LogTemplates.SESSION_REACTIVATED, passcode)
                return CreateResult(session=self._view(session), member_id=member_id, reactivated=True)

    async def join(self, passcode: str, member_id: str | None) -> JoinResult:
        with _annotate(passcode, "join"):
            async with self._repo.locked(passcode) as session:
                if not session.is_active:
                    is_owner = session.is_owner(member_id)
                    logger.info(LogTemplates.JOIN_REJECTED_INACTIVE, passcode, is_owner)
                    raise InactiveSessionError(passcode, is_owner=is_owner)

                member_id = member_id or generate_member_id()
                if session.add_member(member_id):
                    await self._repo.save(session)
                    logger.info(LogTemplates.MEMBER_JOINED, member_id, passcode)
                else:
                    logger.debug(LogTemplates.MEMBER_ALREADY_JOINED, member_id, passcode)

                return JoinResult(member_id=member_id, is_owner=session.is_owner(member_id))

    async def logout(self, passcode: str, member_id: str | None) -> bool:
        """Deactivate the session if ``member_id`` is the owner. Returns whether it did."""
        with _annotate(passcode, "logout"):
            async with self._repo.locked(passcode) as session:
                if not session.is_owner(member_id):
                    return False
                session.deactivate()
                await self._repo.save(session)
                self._scheduler.cancel(passcode)
                logger.info(LogTemplates.SESSION_LOGGED_OUT, passcode)
                return True

    async def update_settings(self, passcode: str, member_id: str | None, **changes: Any) -> SessionSettings:
        with _annotate(passcode, "update_settings"):
            async with self._repo.locked(passcode) as session:
                if not session.is_owner(member_id):
                    raise NotOwnerError()

                unknown = set(changes) - set(SessionSettings.model_fields)
                if unknown:
                    raise InvalidOperationError(
                        operation="update_settings",
                        current_state="unknown_setting",
                        message=f"Unknown settings: {', '.join(sorted(unknown))}",
                    )
                try:
                    session.settings = SessionSettings.model_validate(
                        {**session.settings.model_dump(), **changes}
                    )
                except ValidationError as exc:
                    raise InvalidOperationError(
                        operation="update_settings", current_state="invalid_value", message=str(exc)
                    ) from exc

                await self._repo.save(session)
                logger.info(LogTemplates.SETTINGS_UPDATED, passcode)
                return session.settings

    # ---- Queue ----

    async def add_track(self, passcode: str, member_id: str | None, track_uri: str) -> AddTrackResult:
        """Append a track to the pending queue. Does not start playback."""
        with _annotate(passcode, "add_track"):
            try:
                track_id = TrackUri(track_uri).track_id
            except ValueError as exc:
                raise InvalidOperationError(
                    operation="add_track", current_state="invalid_uri", message=str(exc)
                ) from exc

            async with self._repo.locked(passcode) as session:
                self._require_active(session, member_id)
                proposer = self._require_member(session, member_id, "add_track")
                access_token = await self._refresh(session)

                logger.debug(LogTemplates.TRACK_METADATA_FETCH, track_id, passcode)
                track = await self._client.get_track_metadata(access_token, track_id)
                entry = session.enqueue(track, proposer)
                await self._repo.save(session)

                queue_length = len(session.pending_queue)
                logger.info(LogTemplates.TRACK_QUEUED, track.id, passcode, proposer, queue_length)
                return AddTrackResult(
                    entry=entry,
                    queue_length=queue_length,
                    should_start=session.current_track is None,
                )

    async def advance_to_next(self, passcode: str, from_track_id: str | None = None) -> SessionView:
        """Move the queue head into playback.

        With ``from_track_id`` the call only proceeds if that track is still the
        current one, so concurrent triggers for the same track advance once.
        """
        with _annotate(passcode, "advance"):
            async with self._repo.locked(passcode) as session:
                if from_track_id is not None and session.current_track_id != from_track_id:
                    logger.info(
                        LogTemplates.STALE_ADVANCE, passcode, from_track_id, session.current_track_id
                    )
                    return self._view(session)
                self._require_active(session, None)
                return await self._advance_locked(session)

    async def _advance_locked(self, session: Session) -> SessionView:
        entry = session.advance()
        if entry is None:
            session.is_playing = False
            await self._repo.save(session)
            self._scheduler.cancel(session.passcode)
            logger.info(LogTemplates.QUEUE_EXHAUSTED, session.passcode)
            return self._view(session)

        logger.info(LogTemplates.NEXT_TRACK, session.passcode, entry.track.id)
        await self._start_current(session, award_proposer=session.settings.gamify_enabled)
        return self._view(session)

    async def _start_current(self, session: Session, award_proposer: bool = False) -> None:
        """Start ``current_track`` from the beginning and arm its timer.

        On failure the session is left stalled: current track kept, not playing, no timer.
        """
        current = session.current_track
        assert current is not None
        current.track = current.track.with_progress(0)
        try:
            await self._guard.ensure_fresh(session)
            session.is_playing = False
            await self._repo.save(session)
            access_token = session.access_token
            assert access_token is not None
            await self._client.start_track(access_token, current.track.id, session.device_id)
        except DomainError as exc:
            logger.warning(LogTemplates.TRACK_START_FAILED, current.track.id, session.passcode, exc.message)
            session.is_playing = False
            await self._repo.save(session)
            self._scheduler.cancel(session.passcode, reset_failures=False)
            raise

        if award_proposer:
            session.award_points(current.proposer, 1)
        session.is_playing = True
        await self._repo.save(session)
        self._scheduler.arm(session.passcode, current.track.id, current.track.remaining_ms)
        logger.info(LogTemplates.TRACK_STARTED, current.track.id, session.passcode)

    async def play(self, passcode: str, member_id: str | None) -> SessionView:
        """Start playback on demand.

        Idle starts the queue head, stalled restarts the current track, playing is a no-op.
        """
        with _annotate(passcode, "play"):
            async with self._repo.locked(passcode) as session:
                self._require_active(session, member_id)
                self._require_member(session, member_id, "play")

                if session.current_track is None:
                    return await self._advance_locked(session)
                if self._watching(passcode):
                    return self._view(session)
                await self._start_current(session)
                return self._view(session)

    async def skip(self, passcode: str, member_id: str | None) -> SessionView:
        """Owner-only manual advance past the current track."""
        with _annotate(passcode, "skip"):
            session = await self.require_owner(passcode, member_id)
            return await self.advance_to_next(passcode, from_track_id=session.current_track_id)

    async def select_device(self, passcode: str, member_id: str | None, device_id: str) -> SessionView:
        with _annotate(passcode, "select_device"):
            async with self._repo.locked(passcode) as session:
                self._require_active(session, member_id)
                self._require_member(session, member_id, "select_device")
                access_token = await self._refresh(session)

                session.device_id = device_id
                await self._repo.save(session)
                await self._client.set_device(access_token, device_id, resume_playing=session.is_playing)
                logger.info(LogTemplates.DEVICE_SELECTED, device_id, passcode)
                return self._view(session)

    # ---- Votes ----

    async def vote(self, passcode: str, member_id: str | None) -> VoteResult:
        """Toggle the member's vote on the current track.

        Skip policy stays with the caller; this only keeps the vote set consistent.
        """
        with _annotate(passcode, "vote"):
            async with self._repo.locked(passcode) as session:
                self._require_active(session, member_id)
                voter = self._require_member(session, member_id, "vote")

                added = session.toggle_vote(voter)
                current = session.current_track
                assert current is not None
                if session.settings.gamify_enabled:
                    session.award_points(current.proposer, -1 if added else 1)
                await self._repo.save(session)

                logger.info(
                    LogTemplates.VOTE_TOGGLED,
                    voter,
                    "added" if added else "removed",
                    current.track.id,
                    passcode,
                    current.vote_count,
                )
                return VoteResult(track_id=current.track.id, voted=added, vote_count=current.vote_count)

    # ---- Remote sync ----

    async def sync_with_remote(self, passcode: str, member_id: str | None) -> PlaybackStatus:
        """Reconcile local state with what the provider is actually playing.

        Provider failures fall back to the last known local state. Re-arms the
        scheduler when the provider plays something no timer is watching.
        """
        with _annotate(passcode, "sync"):
            async with self._repo.locked(passcode) as session:
                local = PlaybackStatus(
                    current_track=session.current_track, is_playing=session.is_playing, synced=False
                )
                if not session.is_active:
                    return local

                try:
                    access_token = await self._refresh(session)
                    remote = await self._client.get_currently_playing(access_token)
                except (
                    RemoteUnavailableError,
                    UnauthorizedError,
                    ProviderRejectedError,
                    NotFoundError,
                ) as exc:
                    logger.warning(LogTemplates.SYNC_POLL_FAILED, passcode, exc)
                    return local

                previous_id = session.current_track_id
                was_playing = session.is_playing
                requester = member_id if session.is_member(member_id) else None
                changed = session.adopt_remote_track(remote.track, requester)
                if changed:
                    logger.info(LogTemplates.SYNC_ADOPTED_REMOTE, passcode, remote.track.id, previous_id)

                session.is_playing = remote.is_playing
                await self._repo.save(session)

                if remote.is_playing and (
                    changed or not was_playing or not self._watching(passcode)
                ):
                    logger.info(LogTemplates.SYNC_REARM, passcode)
                    self._scheduler.arm(passcode, remote.track.id, remote.remaining_ms)

                return PlaybackStatus(current_track=session.current_track, is_playing=remote.is_playing)

    # ---- Scheduler driver ----

    async def fresh_access_token(self, passcode: str) -> str | None:
        async with self._repo.locked(passcode) as session:
            if not session.is_active:
                return None
            return await self._refresh(session)

    async def resume_stalled(self, passcode: str) -> SessionView:
        """Start the current track again after an automatic advance failed to start it.

        No-op when the track is already playing or the queue has emptied meanwhile.
        """
        with _annotate(passcode, "resume"):
            async with self._repo.locked(passcode) as session:
                self._require_active(session, None)
                current = session.current_track
                if current is None or session.is_playing:
                    return self._view(session)
                logger.info(LogTemplates.TRACK_RESUMING, current.track.id, passcode)
                await self._start_current(session, award_proposer=session.settings.gamify_enabled)
                return self._view(session)

    async def mark_stopped(self, passcode: str) -> None:
        async with self._repo.locked(passcode) as session:
            self._scheduler.cancel(passcode)
            if session.is_playing:
                session.is_playing = False
                await self._repo.save(session)
