"""Session repository backed by a document `SessionStore`."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from shared_queue.domain.session.entities import Session
from shared_queue.domain.session.repository import SessionRecord, SessionRepository

if TYPE_CHECKING:
    from shared_queue.domain.session.repository import SessionStore

logger = logging.getLogger(__name__)

# Columns of their own, kept out of the JSON document.
_ROW_FIELDS = {"passcode", "is_playing"}


class DocumentSessionRepository(SessionRepository):
    def __init__(self, store: SessionStore) -> None:
        self._store = store

    @asynccontextmanager
    async def locked(self, passcode: str) -> AsyncGenerator[Session, None]:
        async with self._store.load_for_update(passcode) as record:
            yield self._record_to_session(record)

    async def load(self, passcode: str) -> Session:
        return self._record_to_session(await self._store.load(passcode))

    async def save(self, session: Session) -> None:
        await self._store.save(self._session_to_record(session))

    async def create(self, session: Session) -> None:
        await self._store.create(self._session_to_record(session))

    async def exists_passcode(self, passcode: str) -> bool:
        return await self._store.exists_passcode(passcode)

    async def find_by_external_account(self, external_account_id: str) -> Session | None:
        record = await self._store.find_by_owner_account(external_account_id)
        return self._record_to_session(record) if record else None

    async def iter_playing(self) -> AsyncIterator[Session]:
        for record in await self._store.find_playing():
            try:
                yield self._record_to_session(record)
            except ValueError:
                logger.exception("Skipping unreadable session document %s", record.passcode)

    def _record_to_session(self, record: SessionRecord) -> Session:
        return Session.model_validate(
            {**record.data, "passcode": record.passcode, "is_playing": record.is_playing}
        )

    def _session_to_record(self, session: Session) -> SessionRecord:
        return SessionRecord(
            passcode=session.passcode,
            owner_account=session.owner_account,
            is_playing=session.is_playing,
            data=session.model_dump(mode="json", exclude=_ROW_FIELDS),
        )
