from __future__ import annotations


class PersistenceError(Exception):
    """Base class for everything raised by the persistence layer."""


class TransportError(PersistenceError):
    """Network failure, timeout, or a response we could not make sense of."""


class StoreError(PersistenceError):
    def __init__(self, status: int, body: str, *, operation: str = "") -> None:
        self.status = status
        self.body = body
        self.operation = operation
        prefix = f"{operation} failed" if operation else "store request failed"
        super().__init__(f"{prefix}: status={status} body={body!r}")


class NotFound(PersistenceError):
    def __init__(self, collection: str, identifier: str) -> None:
        self.collection = collection
        self.identifier = identifier
        super().__init__(f"{collection}/{identifier} not found")


class DecodeError(PersistenceError):
    def __init__(self, kind: str, field: str, message: str) -> None:
        self.kind = kind
        self.field = field
        super().__init__(message)


class FieldMissing(DecodeError):
    def __init__(self, kind: str, field: str) -> None:
        super().__init__(kind, field, f"{kind}: required field {field!r} is missing")


class FieldTypeMismatch(DecodeError):
    def __init__(self, kind: str, field: str, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(kind, field, f"{kind}: field {field!r} expected {expected}, got {actual}")


class MalformedValue(DecodeError):
    def __init__(self, field: str, detail: str, *, kind: str = "") -> None:
        self.detail = detail
        where = f"{kind}: " if kind else ""
        super().__init__(kind, field, f"{where}field {field!r} is malformed: {detail}")
