"""DTOs returned by the queue coordinator."""

from __future__ import annotations

from pydantic import BaseModel

from ...domain.session.entities import CurrentTrack, Member, QueueEntry, Session, SessionSettings
from ...domain.session.value_objects import PlaybackPhase, SessionStatus
from ...domain.shared.types import NonNegativeInt


class SessionView(BaseModel):
    """Public projection of a session. Never carries credentials."""

    passcode: str
    owner: str
    status: SessionStatus
    phase: PlaybackPhase
    is_playing: bool
    device_id: str | None
    current_track: CurrentTrack | None
    pending_queue: list[QueueEntry]
    members: list[Member]
    settings: SessionSettings

    @classmethod
    def of(cls, session: Session, timer_armed: bool = False) -> SessionView:
        return cls(
            passcode=session.passcode,
            owner=session.owner,
            status=session.status,
            phase=PlaybackPhase.of(session.current_track is not None, timer_armed),
            is_playing=session.is_playing,
            device_id=session.device_id,
            current_track=session.current_track.model_copy(deep=True) if session.current_track else None,
            pending_queue=list(session.pending_queue),
            members=[m.model_copy() for m in session.members],
            settings=session.settings.model_copy(),
        )

    @property
    def queue_length(self) -> int:
        return len(self.pending_queue)


class CreateResult(BaseModel):
    session: SessionView
    member_id: str
    reactivated: bool = False


class JoinResult(BaseModel):
    member_id: str
    is_owner: bool


class AddTrackResult(BaseModel):
    entry: QueueEntry
    queue_length: NonNegativeInt
    should_start: bool = False


class VoteResult(BaseModel):
    track_id: str
    voted: bool
    vote_count: NonNegativeInt


class PlaybackStatus(BaseModel):
    """What a status poll reports back to a member."""

    current_track: CurrentTrack | None
    is_playing: bool
    synced: bool = True
