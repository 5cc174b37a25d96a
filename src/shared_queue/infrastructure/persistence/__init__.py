"""SQLite persistence for session documents."""

from shared_queue.infrastructure.persistence.database import Database
from shared_queue.infrastructure.persistence.session_store import SQLiteSessionStore

__all__ = [
    "Database",
    "SQLiteSessionStore",
]
