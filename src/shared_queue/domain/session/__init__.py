"""
Session Bounded Context

Domain model for a shared playback session: members, queue, votes and credentials.
"""

from shared_queue.domain.session.entities import (
    Credentials,
    CurrentTrack,
    Member,
    QueueEntry,
    Session,
    SessionSettings,
    Track,
)
from shared_queue.domain.session.repository import SessionRecord, SessionRepository, SessionStore
from shared_queue.domain.session.value_objects import PlaybackPhase, SessionStatus, TrackUri

__all__ = [
    # Entities
    "Session",
    "Track",
    "QueueEntry",
    "CurrentTrack",
    "Member",
    "Credentials",
    "SessionSettings",
    # Value Objects
    "TrackUri",
    "SessionStatus",
    "PlaybackPhase",
    # Repository
    "SessionRecord",
    "SessionStore",
    "SessionRepository",
]
