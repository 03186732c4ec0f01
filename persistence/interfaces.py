from __future__ import annotations

from typing import Any, Iterator, Mapping, Protocol, TypeVar

from .records import StoredRecord

R = TypeVar("R", bound=StoredRecord)


class RecordStore(Protocol[R]):
    """
    Collection-scoped CRUD over one record kind.

    Every call is a single blocking round trip (``scan`` one per page);
    ``timeout`` can only shorten the store's configured limit.
    """

    def create(self, record: R, *, document_id: str | None = None, timeout: float | None = None) -> str:
        """Store a new document and return its identifier."""
        ...

    def get(self, identifier: str, *, timeout: float | None = None) -> R:
        """Raises NotFound when no such document exists."""
        ...

    def scan(self, *, timeout: float | None = None) -> Iterator[R]:
        ...

    def list(self, owner_id: str, *, timeout: float | None = None) -> list[R]:
        ...

    def update(
        self,
        identifier: str,
        updates: Mapping[str, Any],
        *,
        expected_update_time: str | None = None,
        timeout: float | None = None,
    ) -> str | None:
        """
        Apply a partial update; returns the document's new update time.

        Raises ValueError for a field the record kind does not declare and
        TypeError for a value of the wrong kind, before anything is sent.
        """
        ...

    def delete(self, identifier: str, *, timeout: float | None = None) -> None:
        ...
