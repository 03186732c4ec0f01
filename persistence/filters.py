from __future__ import annotations

from typing import Callable, Iterable, TypeVar

from .records import StoredRecord

R = TypeVar("R", bound=StoredRecord)


def filter_records(records: Iterable[R], predicate: Callable[[R], bool]) -> list[R]:
    # Keeps the order the store returned the records in.
    return [r for r in records if predicate(r)]


def owned_by(owner_id: str) -> Callable[[StoredRecord], bool]:
    def _match(record: StoredRecord) -> bool:
        return getattr(record, "user_id", None) == owner_id

    return _match
