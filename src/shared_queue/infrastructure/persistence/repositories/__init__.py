"""Session repository implementations."""

from shared_queue.infrastructure.persistence.repositories.session_repository import (
    DocumentSessionRepository,
)

__all__ = [
    "DocumentSessionRepository",
]
