from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, TypeVar

from .codec import SESSION_CODEC
from .errors import NotFound
from .firestore import Stores
from .interfaces import RecordStore
from .records import MeetingRecord, ReminderRecord, SessionRecord, StoredRecord, TaskRecord

R = TypeVar("R", bound=StoredRecord)


class AsyncRecordRepository(Protocol[R]):
    async def create(self, record: R, *, document_id: str | None = None) -> str: ...
    async def get(self, identifier: str) -> R | None: ...
    async def list_for_owner(self, owner_id: str) -> list[R]: ...
    async def update(self, identifier: str, updates: Mapping[str, Any]) -> None: ...
    async def delete(self, identifier: str) -> None: ...


class AsyncStoreRepository(AsyncRecordRepository[R]):
    """
    Async wrapper around a blocking RecordStore.
    Uses asyncio.to_thread to avoid blocking the event loop on network I/O.

    ``timeout`` is the caller's own deadline for each call; it can only
    shorten the store's configured timeout.
    """

    def __init__(self, store: RecordStore[R], *, timeout: float | None = None) -> None:
        self._store = store
        self._timeout = timeout

    async def create(self, record: R, *, document_id: str | None = None) -> str:
        return await asyncio.to_thread(self._store.create, record, document_id=document_id, timeout=self._timeout)

    async def get(self, identifier: str) -> R | None:
        try:
            return await asyncio.to_thread(self._store.get, identifier, timeout=self._timeout)
        except NotFound:
            return None

    async def list_for_owner(self, owner_id: str) -> list[R]:
        return await asyncio.to_thread(self._store.list, owner_id, timeout=self._timeout)

    async def update(self, identifier: str, updates: Mapping[str, Any]) -> None:
        await asyncio.to_thread(self._store.update, identifier, dict(updates), timeout=self._timeout)

    async def delete(self, identifier: str) -> None:
        await asyncio.to_thread(self._store.delete, identifier, timeout=self._timeout)


class AsyncSessionRepository(AsyncStoreRepository[SessionRecord]):
    """Session documents are keyed by the identity provider's user id."""

    async def record_login(self, session: SessionRecord) -> SessionRecord:
        """
        Create the user's session document on first login; afterwards only
        refresh the tokens. Returns the stored session, with the lastLogin the
        store stamped on the update.
        """
        existing = await self.get(session.user_id)
        if existing is None:
            await self.create(session, document_id=session.user_id)
            return session.model_copy(update={"id": session.user_id})

        updates: dict[str, Any] = {"accessToken": session.access_token}
        if session.refresh_token is not None:
            updates["refreshToken"] = session.refresh_token
        await self.update(session.user_id, updates)
        refreshed = await self.get(session.user_id)
        if refreshed is None:
            raise NotFound(SESSION_CODEC.collection, session.user_id)
        return refreshed


@dataclass(frozen=True)
class AsyncRepositories:
    sessions: AsyncSessionRepository
    tasks: AsyncStoreRepository[TaskRecord]
    meetings: AsyncStoreRepository[MeetingRecord]
    reminders: AsyncStoreRepository[ReminderRecord]

    @classmethod
    def from_stores(cls, stores: Stores, *, timeout: float | None = None) -> "AsyncRepositories":
        return cls(
            sessions=AsyncSessionRepository(stores.sessions, timeout=timeout),
            tasks=AsyncStoreRepository(stores.tasks, timeout=timeout),
            meetings=AsyncStoreRepository(stores.meetings, timeout=timeout),
            reminders=AsyncStoreRepository(stores.reminders, timeout=timeout),
        )
