"""Application services coordinating sessions, credentials and playback timers."""

from shared_queue.application.services.coordinator_models import (
    AddTrackResult,
    CreateResult,
    JoinResult,
    PlaybackStatus,
    SessionView,
    VoteResult,
)
from shared_queue.application.services.credential_guard import CredentialGuard
from shared_queue.application.services.playback_scheduler import (
    PendingCheck,
    PlaybackDriver,
    PlaybackScheduler,
)
from shared_queue.application.services.queue_coordinator import QueueCoordinator

__all__ = [
    "CredentialGuard",
    "PlaybackScheduler",
    "PlaybackDriver",
    "PendingCheck",
    "QueueCoordinator",
    "SessionView",
    "CreateResult",
    "JoinResult",
    "AddTrackResult",
    "VoteResult",
    "PlaybackStatus",
]
