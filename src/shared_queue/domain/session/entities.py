"""Core domain entities for the session bounded context."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from shared_queue.domain.session.value_objects import SessionStatus
from shared_queue.domain.shared.datetime_utils import utcnow
from shared_queue.domain.shared.exceptions import InvalidOperationError
from shared_queue.domain.shared.messages import ErrorMessages
from shared_queue.domain.shared.types import (
    DurationMs,
    MemberIdStr,
    NonEmptyStr,
    NonNegativeInt,
    PasscodeStr,
    TrackNameStr,
    UnixSeconds,
    UtcDatetimeField,
)


class Track(BaseModel):
    """Immutable value object describing a provider track and how far into it playback is."""

    model_config = ConfigDict(frozen=True)

    id: NonEmptyStr
    name: TrackNameStr
    artist: TrackNameStr
    duration_ms: DurationMs
    progress_ms: DurationMs = 0
    cover_url: str | None = None

    @property
    def remaining_ms(self) -> int:
        """Authoritative time remaining, used for scheduling."""
        return max(0, self.duration_ms - self.progress_ms)

    def with_progress(self, progress_ms: int) -> Track:
        return self.model_copy(update={"progress_ms": progress_ms})


class QueueEntry(BaseModel):
    """A track waiting in the pending queue, with the member who proposed it."""

    model_config = ConfigDict(frozen=True)

    track: Track
    proposer: MemberIdStr


class CurrentTrack(BaseModel):
    track: Track
    proposer: MemberIdStr
    votes: set[str] = Field(default_factory=set)

    @property
    def vote_count(self) -> int:
        return len(self.votes)


class Member(BaseModel):
    id: MemberIdStr
    external_account_id: str | None = None
    points: int = 0

    @property
    def has_linked_account(self) -> bool:
        return self.external_account_id is not None


class Credentials(BaseModel):
    """Provider credentials. ``access_token is None`` means the session is inactive."""

    access_token: str | None
    refresh_token: str = ""
    acquired_at: UnixSeconds
    expires_in_seconds: NonNegativeInt

    def is_expired(self, now: int) -> bool:
        return now - self.acquired_at >= self.expires_in_seconds


class SessionSettings(BaseModel):
    autoplay_playlist_id: str | None = None
    autoplay_random: bool = False
    gamify_enabled: bool = False


class Session(BaseModel):
    """Aggregate root holding the collaborative state behind one passcode."""

    passcode: PasscodeStr
    owner: MemberIdStr
    credentials: Credentials
    device_id: str | None = None
    current_track: CurrentTrack | None = None
    pending_queue: list[QueueEntry] = Field(default_factory=list)
    members: list[Member] = Field(min_length=1)
    settings: SessionSettings = Field(default_factory=SessionSettings)
    is_playing: bool = False
    created_at: UtcDatetimeField = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _check_membership(self) -> Session:
        seen: set[str] = set()
        for member in self.members:
            if member.id in seen:
                raise ValueError(ErrorMessages.DUPLICATE_MEMBER.format(member_id=member.id))
            seen.add(member.id)
        if self.owner not in seen:
            raise ValueError(ErrorMessages.OWNER_NOT_MEMBER.format(owner=self.owner))
        return self

    @classmethod
    def new(
        cls,
        *,
        passcode: str,
        owner_member_id: str,
        external_account_id: str,
        credentials: Credentials,
    ) -> Session:
        """Create a fresh session whose only member is the authenticated owner."""
        return cls(
            passcode=passcode,
            owner=owner_member_id,
            credentials=credentials,
            members=[Member(id=owner_member_id, external_account_id=external_account_id)],
        )

    # ---- Status ----

    @property
    def status(self) -> SessionStatus:
        return SessionStatus.ACTIVE if self.is_active else SessionStatus.INACTIVE

    @property
    def is_active(self) -> bool:
        return self.credentials.access_token is not None

    @property
    def access_token(self) -> str | None:
        return self.credentials.access_token

    @property
    def current_track_id(self) -> str | None:
        return self.current_track.track.id if self.current_track else None

    # ---- Membership ----

    @property
    def owner_member(self) -> Member:
        member = self.find_member(self.owner)
        if member is None:
            raise ValueError(ErrorMessages.OWNER_NOT_MEMBER.format(owner=self.owner))
        return member

    @property
    def owner_account(self) -> str | None:
        return self.owner_member.external_account_id

    def is_owner(self, member_id: str | None) -> bool:
        return member_id is not None and member_id == self.owner

    def find_member(self, member_id: str | None) -> Member | None:
        return next((m for m in self.members if m.id == member_id), None)

    def is_member(self, member_id: str | None) -> bool:
        return self.find_member(member_id) is not None

    def add_member(self, member_id: str) -> bool:
        """Add a guest with zero points. Returns False if already a member."""
        if self.is_member(member_id):
            return False
        self.members.append(Member(id=member_id))
        return True

    def migrate_owner(self, new_member_id: str) -> str:
        """Rename the owner's membership entry, keeping a single durable owner.

        A guest entry already using ``new_member_id`` is folded away so ids stay unique.
        Returns the previous owner id.
        """
        previous = self.owner
        if new_member_id == previous:
            return previous
        owner_entry = self.owner_member
        self.members = [m for m in self.members if m.id != new_member_id]
        owner_entry.id = new_member_id
        self.owner = new_member_id
        return previous

    def award_points(self, member_id: str, delta: int) -> None:
        member = self.find_member(member_id)
        if member is not None:
            member.points += delta

    # ---- Credentials ----

    def activate(self, credentials: Credentials) -> None:
        self.credentials = credentials

    def deactivate(self) -> None:
        """Owner logout: forget the live token and what is playing."""
        self.credentials = self.credentials.model_copy(
            update={"access_token": None, "refresh_token": ""}
        )
        self.current_track = None
        self.is_playing = False

    def apply_refresh(
        self, *, access_token: str, refresh_token: str, expires_in_seconds: int, acquired_at: int
    ) -> None:
        self.credentials = Credentials(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in_seconds=expires_in_seconds,
            acquired_at=acquired_at,
        )

    # ---- Queue ----

    def enqueue(self, track: Track, proposer: str) -> QueueEntry:
        entry = QueueEntry(track=track, proposer=proposer)
        self.pending_queue.append(entry)
        return entry

    def advance(self) -> QueueEntry | None:
        """Pop the head of the queue into ``current_track`` with a fresh vote set.

        Returns None and clears the current track when the queue is empty.
        """
        if not self.pending_queue:
            self.current_track = None
            return None

        entry = self.pending_queue.pop(0)
        self.current_track = CurrentTrack(track=entry.track, proposer=entry.proposer)
        return entry

    def adopt_remote_track(self, track: Track, requester: str | None) -> bool:
        """Reconcile ``current_track`` with what the provider reports.

        Same track id: refresh progress, keep proposer and votes.
        Different id: take the proposer from the first queued entry for the same
        track and drop that entry, otherwise attribute the track to the requester.
        Returns True if the track changed.
        """
        current = self.current_track
        if current is not None and current.track.id == track.id:
            self.current_track = CurrentTrack(track=track, proposer=current.proposer, votes=current.votes)
            return False

        proposer = requester or self.owner
        for index, entry in enumerate(self.pending_queue):
            if entry.track.id == track.id:
                proposer = self.pending_queue.pop(index).proposer
                break
        self.current_track = CurrentTrack(track=track, proposer=proposer)
        return True

    # ---- Votes ----

    def toggle_vote(self, member_id: str) -> bool:
        """Toggle ``member_id`` in the current track's votes. Returns True if the vote was added."""
        if self.current_track is None:
            raise InvalidOperationError(
                operation="vote", current_state="idle", message=ErrorMessages.NOTHING_PLAYING
            )
        votes = self.current_track.votes
        if member_id in votes:
            votes.discard(member_id)
            return False
        votes.add(member_id)
        return True
