"""
Session Repository Interfaces

Abstract base classes defining the contracts for session persistence.
Implementations live in the infrastructure layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from shared_queue.domain.session.entities import Session


class SessionRecord(BaseModel):
    """One stored row: the JSON-like session document plus its indexed columns."""

    model_config = ConfigDict(frozen=True)

    passcode: str
    owner_account: str | None = None
    is_playing: bool = False
    data: dict[str, Any] = Field(default_factory=dict)


class SessionStore(ABC):
    """Durable storage of one document per session.

    ``load_for_update`` is the locking read: the returned context manager holds
    an exclusive lock on the passcode until the ``async with`` block exits, and
    every read-modify-write of a session must happen inside it.
    """

    @abstractmethod
    def load_for_update(self, passcode: str) -> AbstractAsyncContextManager[SessionRecord]:
        """Lock and load a session document.

        Raises:
            SessionNotFoundError: If no document matches the passcode.
        """
        ...

    @abstractmethod
    async def load(self, passcode: str) -> SessionRecord:
        """Load a session document without locking.

        Raises:
            SessionNotFoundError: If no document matches the passcode.
        """
        ...

    @abstractmethod
    async def save(self, record: SessionRecord) -> None:
        """Overwrite the whole document for ``record.passcode``."""
        ...

    @abstractmethod
    async def create(self, record: SessionRecord) -> None:
        """Insert a new document."""
        ...

    @abstractmethod
    async def exists_passcode(self, passcode: str) -> bool:
        ...

    @abstractmethod
    async def find_by_owner_account(self, external_account_id: str) -> SessionRecord | None:
        ...

    @abstractmethod
    async def find_playing(self) -> list[SessionRecord]:
        """All documents flagged ``is_playing``."""
        ...


class SessionRepository(ABC):
    """Entity-level access to sessions, translating documents to `Session` aggregates."""

    @abstractmethod
    def locked(self, passcode: str) -> AbstractAsyncContextManager[Session]:
        """Load a session for update: the passcode's exclusive lock is held for the
        whole ``async with`` block.

        Changes are only persisted by an explicit ``save`` inside the block.
        """
        ...

    @abstractmethod
    async def load(self, passcode: str) -> Session:
        """Load a session without locking. Callers that intend to write use ``locked``."""
        ...

    @abstractmethod
    async def save(self, session: Session) -> None:
        """Full-document overwrite, last writer wins."""
        ...

    @abstractmethod
    async def create(self, session: Session) -> None:
        ...

    @abstractmethod
    async def exists_passcode(self, passcode: str) -> bool:
        ...

    @abstractmethod
    async def find_by_external_account(self, external_account_id: str) -> Session | None:
        ...

    @abstractmethod
    def iter_playing(self) -> AsyncIterator[Session]:
        """Yield every session flagged as playing."""
        ...
