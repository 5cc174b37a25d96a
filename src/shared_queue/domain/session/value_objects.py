"""Immutable value objects for the session bounded context."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from enum import Enum

from shared_queue.domain.shared.constants import IdentifierConstants
from shared_queue.domain.shared.messages import ErrorMessages


@dataclass(frozen=True)
class TrackUri:
    """Provider track URI such as ``spotify:track:4uLU6hMCjMI75M1A2tKUQC``.

    The provider's metadata endpoint wants the bare id, which is the last
    colon-separated segment.
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError(ErrorMessages.EMPTY_TRACK_ID)
        if not self.track_id:
            raise ValueError(ErrorMessages.INVALID_TRACK_URI.format(uri=self.value))

    def __str__(self) -> str:
        return self.value

    @property
    def track_id(self) -> str:
        return self.value.rsplit(":", 1)[-1].strip()


class SessionStatus(Enum):
    """Whether a session holds live provider credentials.

    State transitions:
    - (no document) -> ACTIVE (create)
    - ACTIVE -> INACTIVE (owner logout)
    - INACTIVE -> ACTIVE (reactivate)
    """

    ACTIVE = "active"
    INACTIVE = "inactive"


class PlaybackPhase(Enum):
    """Sub-state of an active session.

    - IDLE: nothing current
    - PLAYING: a current track and an armed scheduler timer
    - STALLED: a current track but no timer, e.g. the provider was unreachable
    """

    IDLE = "idle"
    PLAYING = "playing"
    STALLED = "stalled"

    @classmethod
    def of(cls, has_current_track: bool, timer_armed: bool) -> PlaybackPhase:
        if not has_current_track:
            return cls.IDLE
        return cls.PLAYING if timer_armed else cls.STALLED


def generate_passcode(length: int) -> str:
    """Random readable alphanumeric passcode."""
    alphabet = IdentifierConstants.PASSCODE_ALPHABET
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_member_id() -> str:
    alphabet = IdentifierConstants.MEMBER_ID_ALPHABET
    return "".join(secrets.choice(alphabet) for _ in range(IdentifierConstants.MEMBER_ID_LENGTH))
