from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, TypeVar
from urllib.parse import quote

import httpx

from settings import Settings

from .codec import MEETING_CODEC, REMINDER_CODEC, SESSION_CODEC, TASK_CODEC, RecordCodec
from .errors import DecodeError, NotFound, StoreError, TransportError
from .filters import filter_records, owned_by
from .interfaces import RecordStore
from .patch import build_patch
from .records import MeetingRecord, ReminderRecord, SessionRecord, StoredRecord, TaskRecord, utcnow
from .typed_values import TimestampValue, document_from_wire, document_to_wire

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=StoredRecord)

FIRESTORE_API_ROOT = "https://firestore.googleapis.com/v1"


def firestore_base_url(project_id: str) -> str:
    return f"{FIRESTORE_API_ROOT}/projects/{project_id}/databases/(default)/documents"


def identifier_from_name(name: Any) -> str:
    """``projects/p/databases/(default)/documents/tasks/abc`` -> ``abc``"""
    if not isinstance(name, str) or not name.strip("/"):
        raise TransportError(f"response has no usable document name: {name!r}")
    return name.rstrip("/").rsplit("/", 1)[-1]


def _update_time(body: Mapping[str, Any]) -> str | None:
    value = body.get("updateTime")
    return value if isinstance(value, str) else None


def _json_object(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError as e:
        raise TransportError(f"response is not JSON (status={response.status_code})") from e
    if not isinstance(body, dict):
        raise TransportError(f"expected a JSON object, got {type(body).__name__}")
    return body


class FirestoreClient:
    """
    Thin wrapper over a shared httpx.Client.

    Holds only immutable configuration, so one instance can serve every
    collection and every thread. Requests are never retried.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
        debug_log_requests: bool = False,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key or None
        self._timeout = float(timeout)
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=self._timeout)
        self._debug_log_requests = debug_log_requests

    @property
    def timeout(self) -> float:
        return self._timeout

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "FirestoreClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _effective_timeout(self, timeout: float | None) -> float:
        if timeout is None:
            return self._timeout
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        return min(self._timeout, float(timeout))

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: list[tuple[str, str]] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["X-Goog-Api-Key"] = self._api_key
        url = f"{self._base_url}/{path.lstrip('/')}"

        if self._debug_log_requests:
            logger.info("FIRESTORE REQUEST: %s %s", method, path)

        try:
            # Non-streaming request: httpx reads the whole body and hands the
            # connection back to the pool before returning, on every path.
            return self._client.request(
                method,
                url,
                json=json,
                params=params or None,
                headers=headers,
                timeout=self._effective_timeout(timeout),
            )
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e!r}") from e


class FirestoreDocumentStore(RecordStore[R]):
    """CRUD over one collection, using that record kind's codec."""

    def __init__(self, client: FirestoreClient, codec: RecordCodec[R], *, page_size: int = 300) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self._client = client
        self._codec = codec
        self._page_size = page_size

    @property
    def codec(self) -> RecordCodec[R]:
        return self._codec

    @property
    def collection(self) -> str:
        return self._codec.collection

    def _document_path(self, identifier: str) -> str:
        if not isinstance(identifier, str) or not identifier.strip() or "/" in identifier:
            raise ValueError(f"invalid document id: {identifier!r}")
        return f"{self.collection}/{quote(identifier, safe='')}"

    def _raise_for_status(self, response: httpx.Response, operation: str) -> None:
        if response.status_code >= 400:
            raise StoreError(response.status_code, response.text, operation=f"{operation} {self.collection}")

    def create(self, record: R, *, document_id: str | None = None, timeout: float | None = None) -> str:
        params = None
        if document_id is not None:
            self._document_path(document_id)
            params = [("documentId", document_id)]

        payload = document_to_wire(self._codec.encode(record))
        resp = self._client.request("POST", self.collection, json=payload, params=params, timeout=timeout)
        self._raise_for_status(resp, "create")

        identifier = identifier_from_name(_json_object(resp).get("name"))
        logger.info("CREATE %s: id=%s", self.collection, identifier)
        return identifier

    def get(self, identifier: str, *, timeout: float | None = None) -> R:
        resp = self._client.request("GET", self._document_path(identifier), timeout=timeout)
        if resp.status_code == 404:
            raise NotFound(self.collection, identifier)
        self._raise_for_status(resp, "get")

        body = _json_object(resp)
        doc = document_from_wire(body, kind=self._codec.kind)
        return self._codec.decode(doc, identifier=identifier, update_time=_update_time(body))

    def scan(self, *, timeout: float | None = None) -> Iterator[R]:
        """
        Yield every decodable document in the collection, in store order.

        Documents that fail to decode are logged and skipped; everything else
        (status errors, broken responses) propagates.
        """
        page_token: str | None = None
        while True:
            params = [("pageSize", str(self._page_size))]
            if page_token:
                params.append(("pageToken", page_token))
            resp = self._client.request("GET", self.collection, params=params, timeout=timeout)
            self._raise_for_status(resp, "list")

            body = _json_object(resp)
            documents = body.get("documents") or []
            if not isinstance(documents, list):
                raise TransportError("'documents' is not a list")

            for raw in documents:
                record = self._decode_listed(raw)
                if record is not None:
                    yield record

            page_token = body.get("nextPageToken") or None
            if not page_token:
                return

    def _decode_listed(self, raw: Any) -> R | None:
        if not isinstance(raw, Mapping):
            logger.warning("LIST %s: skipping listed entry of type %s", self.collection, type(raw).__name__)
            return None
        name = raw.get("name")
        if not isinstance(name, str) or not name.strip("/"):
            logger.warning("LIST %s: skipping document without a usable name: %r", self.collection, name)
            return None
        identifier = identifier_from_name(name)
        try:
            doc = document_from_wire(raw, kind=self._codec.kind)
            return self._codec.decode(doc, identifier=identifier, update_time=_update_time(raw))
        except DecodeError as e:
            logger.warning("LIST %s: skipping document %s: %s", self.collection, identifier, e)
            return None

    def list(self, owner_id: str, *, timeout: float | None = None) -> list[R]:
        records = filter_records(self.scan(timeout=timeout), owned_by(owner_id))
        logger.info("LIST %s: found %d records for owner %s", self.collection, len(records), owner_id)
        return records

    def update(
        self,
        identifier: str,
        updates: Mapping[str, Any],
        *,
        expected_update_time: str | None = None,
        timeout: float | None = None,
    ) -> str | None:
        path = self._document_path(identifier)

        patch = build_patch(updates)
        self._codec.check_patch(patch)
        # Always stamped, overriding whatever the caller passed.
        patch[self._codec.modified_field] = TimestampValue(utcnow())

        params = [("updateMask.fieldPaths", name) for name in patch]
        # Firestore accepts a single precondition per write.
        if expected_update_time:
            params.append(("currentDocument.updateTime", expected_update_time))
        else:
            params.append(("currentDocument.exists", "true"))

        resp = self._client.request("PATCH", path, json=document_to_wire(patch), params=params, timeout=timeout)
        self._raise_for_status(resp, "update")

        if not resp.content:
            return None
        return _update_time(_json_object(resp))

    def delete(self, identifier: str, *, timeout: float | None = None) -> None:
        resp = self._client.request("DELETE", self._document_path(identifier), timeout=timeout)
        self._raise_for_status(resp, "delete")
        logger.info("DELETE %s: id=%s", self.collection, identifier)


@dataclass(frozen=True)
class Stores:
    client: FirestoreClient
    sessions: FirestoreDocumentStore[SessionRecord]
    tasks: FirestoreDocumentStore[TaskRecord]
    meetings: FirestoreDocumentStore[MeetingRecord]
    reminders: FirestoreDocumentStore[ReminderRecord]

    def close(self) -> None:
        self.client.close()


def open_stores(settings: Settings, *, http_client: httpx.Client | None = None) -> Stores:
    if not settings.firebase_project_id:
        raise ValueError("FIREBASE_PROJECT_ID is required")

    base_url = settings.firestore_base_url or firestore_base_url(settings.firebase_project_id)
    logger.info("Opening Firestore stores for project %s", settings.firebase_project_id)

    client = FirestoreClient(
        base_url,
        api_key=settings.firebase_api_key,
        timeout=settings.store_timeout_seconds,
        client=http_client,
        debug_log_requests=settings.debug_log_requests,
    )
    page_size = settings.store_page_size
    return Stores(
        client=client,
        sessions=FirestoreDocumentStore(client, SESSION_CODEC, page_size=page_size),
        tasks=FirestoreDocumentStore(client, TASK_CODEC, page_size=page_size),
        meetings=FirestoreDocumentStore(client, MEETING_CODEC, page_size=page_size),
        reminders=FirestoreDocumentStore(client, REMINDER_CODEC, page_size=page_size),
    )
