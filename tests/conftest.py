from __future__ import annotations

import json
from pathlib import Path
import sys
from typing import Any
from urllib.parse import unquote

import httpx
import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
# This avoids ModuleNotFoundError for imports like `import persistence...` under pytest import modes
# that don't automatically prepend the cwd/rootdir to sys.path.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


BASE_URL = "http://firestore.test/v1/projects/demo/databases/default/documents"
DOC_PREFIX = "projects/demo/databases/default/documents"


def _error(status: int, code: str, message: str) -> httpx.Response:
    return httpx.Response(status, json={"error": {"code": status, "status": code, "message": message}})


class FakeFirestore:
    """
    Just enough of the Firestore REST documents API for the store tests:
    create (optionally with documentId), get, paged list, masked PATCH with
    exists/updateTime preconditions, and delete.
    """

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.requests: list[httpx.Request] = []
        self.fail_with: tuple[int, str] | None = None
        self._counter = 0
        self._clock = 0

    # -- helpers -----------------------------------------------------------
    def _next_update_time(self) -> str:
        self._clock += 1
        return f"2024-01-01T00:{self._clock // 60:02d}:{self._clock % 60:02d}.123456789Z"

    def _wire(self, collection: str, doc_id: str) -> dict[str, Any]:
        stored = self.collections[collection][doc_id]
        out: dict[str, Any] = {
            "name": f"{DOC_PREFIX}/{collection}/{doc_id}",
            "createTime": stored["createTime"],
            "updateTime": stored["updateTime"],
        }
        if stored["fields"]:
            out["fields"] = stored["fields"]
        return out

    def seed(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        stamp = self._next_update_time()
        self.collections.setdefault(collection, {})[doc_id] = {
            "fields": dict(fields),
            "createTime": stamp,
            "updateTime": stamp,
        }

    def fields(self, collection: str, doc_id: str) -> dict[str, Any]:
        return self.collections[collection][doc_id]["fields"]

    # -- transport ---------------------------------------------------------
    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            status, body = self.fail_with
            return httpx.Response(status, text=body)

        prefix = httpx.URL(BASE_URL).path + "/"
        path = request.url.path
        assert path.startswith(prefix), path
        parts = [unquote(p) for p in path[len(prefix):].split("/") if p]
        collection = parts[0]
        doc_id = parts[1] if len(parts) > 1 else None
        docs = self.collections.setdefault(collection, {})
        params = request.url.params

        if request.method == "POST" and doc_id is None:
            new_id = params.get("documentId")
            if new_id is None:
                self._counter += 1
                new_id = f"auto{self._counter:04d}"
            elif new_id in docs:
                return _error(409, "ALREADY_EXISTS", "Document already exists")
            self.seed(collection, new_id, json.loads(request.content)["fields"])
            return httpx.Response(200, json=self._wire(collection, new_id))

        if request.method == "GET" and doc_id is None:
            size = int(params.get("pageSize", "100"))
            offset = int(params.get("pageToken", "0"))
            ids = list(docs)[offset : offset + size]
            body: dict[str, Any] = {}
            if ids:
                body["documents"] = [self._wire(collection, i) for i in ids]
            if offset + size < len(docs):
                body["nextPageToken"] = str(offset + size)
            return httpx.Response(200, json=body)

        if request.method == "GET":
            if doc_id not in docs:
                return _error(404, "NOT_FOUND", f"Document {doc_id} not found")
            return httpx.Response(200, json=self._wire(collection, doc_id))

        if request.method == "PATCH":
            expected_time = params.get("currentDocument.updateTime")
            if params.get("currentDocument.exists") == "true" and doc_id not in docs:
                return _error(404, "NOT_FOUND", f"No document to update: {doc_id}")
            if expected_time is not None:
                if doc_id not in docs or docs[doc_id]["updateTime"] != expected_time:
                    return _error(400, "FAILED_PRECONDITION", "the stored version does not match")
            if doc_id not in docs:
                self.seed(collection, doc_id, {})
            patch = json.loads(request.content)["fields"]
            stored = docs[doc_id]
            for name in params.get_list("updateMask.fieldPaths"):
                if name in patch:
                    stored["fields"][name] = patch[name]
                else:
                    stored["fields"].pop(name, None)
            stored["updateTime"] = self._next_update_time()
            return httpx.Response(200, json=self._wire(collection, doc_id))

        if request.method == "DELETE":
            docs.pop(doc_id, None)
            return httpx.Response(200, json={})

        return _error(405, "METHOD_NOT_ALLOWED", request.method)


@pytest.fixture
def firestore() -> FakeFirestore:
    return FakeFirestore()


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch):
    from settings import get_settings

    monkeypatch.setenv("FIREBASE_PROJECT_ID", "demo")
    monkeypatch.setenv("FIREBASE_API_KEY", "test-key")
    monkeypatch.setenv("FIRESTORE_BASE_URL", BASE_URL)
    monkeypatch.delenv("STORE_TIMEOUT_SECONDS", raising=False)
    monkeypatch.delenv("STORE_PAGE_SIZE", raising=False)
    monkeypatch.delenv("DEBUG_LOG_REQUESTS", raising=False)
    return get_settings()


@pytest.fixture
def stores(firestore: FakeFirestore, settings):
    from persistence.firestore import open_stores

    http_client = httpx.Client(transport=httpx.MockTransport(firestore.handler))
    opened = open_stores(settings, http_client=http_client)
    try:
        yield opened
    finally:
        opened.close()
        http_client.close()
