"""SQLite implementation of the session document store."""

from __future__ import annotations

import asyncio
import json
import logging
import weakref
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from shared_queue.domain.session.repository import SessionRecord, SessionStore
from shared_queue.domain.shared.datetime_utils import UtcDateTime
from shared_queue.domain.shared.exceptions import SessionNotFoundError
from shared_queue.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from .database import Database

logger = logging.getLogger(__name__)


class SQLiteSessionStore(SessionStore):
    """Stores each session as a JSON document keyed by passcode.

    SQLite has no row locks, so the exclusive per-passcode lock lives in this
    process: one `asyncio.Lock` per passcode, dropped once nobody references it.
    """

    def __init__(self, database: Database) -> None:
        self._db = database
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, passcode: str) -> asyncio.Lock:
        lock = self._locks.get(passcode)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[passcode] = lock
        return lock

    @asynccontextmanager
    async def load_for_update(self, passcode: str) -> AsyncGenerator[SessionRecord, None]:
        lock = self._lock_for(passcode)
        if lock.locked():
            logger.debug(LogTemplates.SESSION_LOCK_WAIT, passcode)
        async with lock:
            yield await self.load(passcode)

    async def load(self, passcode: str) -> SessionRecord:
        row = await self._db.fetch_one(
            "SELECT passcode, owner_account, is_playing, data FROM sessions WHERE passcode = ?",
            (passcode,),
        )
        if row is None:
            raise SessionNotFoundError(passcode)
        return self._row_to_record(row)

    async def save(self, record: SessionRecord) -> None:
        cursor = await self._db.execute(
            """
            UPDATE sessions
            SET owner_account = ?, is_playing = ?, data = ?, updated_at = ?
            WHERE passcode = ?
            """,
            (
                record.owner_account,
                int(record.is_playing),
                json.dumps(record.data),
                UtcDateTime.now().iso,
                record.passcode,
            ),
        )
        if cursor.rowcount == 0:
            raise SessionNotFoundError(record.passcode)
        logger.debug(LogTemplates.SESSION_SAVED, record.passcode, record.is_playing)

    async def create(self, record: SessionRecord) -> None:
        now = UtcDateTime.now().iso
        await self._db.execute(
            """
            INSERT INTO sessions (passcode, owner_account, is_playing, data, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                record.passcode,
                record.owner_account,
                int(record.is_playing),
                json.dumps(record.data),
                now,
                now,
            ),
        )
        logger.info(LogTemplates.SESSION_CREATED, record.passcode, record.owner_account)

    async def exists_passcode(self, passcode: str) -> bool:
        row = await self._db.fetch_one(
            "SELECT 1 FROM sessions WHERE passcode = ?",
            (passcode,),
        )
        return row is not None

    async def find_by_owner_account(self, external_account_id: str) -> SessionRecord | None:
        row = await self._db.fetch_one(
            "SELECT passcode, owner_account, is_playing, data FROM sessions WHERE owner_account = ?",
            (external_account_id,),
        )
        return self._row_to_record(row) if row else None

    async def find_playing(self) -> list[SessionRecord]:
        rows = await self._db.fetch_all(
            "SELECT passcode, owner_account, is_playing, data FROM sessions WHERE is_playing = 1"
        )
        return [self._row_to_record(row) for row in rows]

    def _row_to_record(self, row: dict[str, Any]) -> SessionRecord:
        return SessionRecord(
            passcode=row["passcode"],
            owner_account=row["owner_account"],
            is_playing=bool(row["is_playing"]),
            data=json.loads(row["data"]),
        )
