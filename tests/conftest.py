import json
import uuid
from typing import Any, Dict, List
from urllib.parse import unquote

import httpx
import pytest
from fastapi.testclient import TestClient

from tech_matrix.config import Settings
from tech_matrix.restdb import RestDbClient
from tech_matrix.server import create_app, get_store

BASE = "https://matrix-demo.restdb.io"
COLLECTION = "techmatrix"
API_KEY = "test-api-key"


def make_settings(**overrides) -> Settings:
    values = {
        "restdb_base": BASE,
        "restdb_collection": COLLECTION,
        "restdb_api_key": API_KEY,
        "app_shared_token": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeRestDb:
    """In-memory stand-in for one restdb.io collection, served over httpx.MockTransport."""

    def __init__(self, api_key: str = API_KEY):
        self.api_key = api_key
        self.docs: List[Dict[str, Any]] = []
        self.requests: List[httpx.Request] = []

    def seed(self, *docs: Dict[str, Any]) -> None:
        for doc in docs:
            stored = dict(doc)
            stored.setdefault("_id", uuid.uuid4().hex[:24])
            self.docs.append(stored)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self) -> RestDbClient:
        return RestDbClient(BASE, COLLECTION, self.api_key, transport=self.transport())

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("x-apikey") != self.api_key:
            return httpx.Response(401, json={"message": "Invalid apikey"})

        prefix = f"/rest/{COLLECTION}"
        path = request.url.path
        if not path.startswith(prefix):
            return httpx.Response(404, text="Collection not found")
        record_id = unquote(path[len(prefix):].strip("/")) or None

        if request.method == "GET" and record_id is None:
            return httpx.Response(200, json=self._list(request.url.params))
        if request.method == "POST" and record_id is None:
            doc = json.loads(request.content)
            doc["_id"] = uuid.uuid4().hex[:24]
            self.docs.append(doc)
            return httpx.Response(201, json=doc)
        if request.method == "DELETE" and record_id:
            for doc in self.docs:
                if doc["_id"] == record_id:
                    self.docs.remove(doc)
                    return httpx.Response(200, json={"result": [record_id]})
            return httpx.Response(404, json={"message": "Record not found", "id": record_id})
        return httpx.Response(405, text="Method not allowed")

    def _list(self, params) -> List[Dict[str, Any]]:
        query = json.loads(params["q"]) if "q" in params else {}
        docs = [d for d in self.docs if all(d.get(k) == v for k, v in query.items())]
        if "sort" in params:
            ((field, direction),) = json.loads(params["sort"]).items()
            docs = sorted(docs, key=lambda d: d.get(field) or "", reverse=direction < 0)
        if "h" in params:
            fields = json.loads(params["h"]).get("$fields", {})
            docs = [
                {"_id": d["_id"], **{f: d[f] for f in fields if f in d}} for d in docs
            ]
        return [dict(d) for d in docs]


@pytest.fixture
def fake_store() -> FakeRestDb:
    return FakeRestDb()


@pytest.fixture
def make_client(fake_store):
    """Build a TestClient for given settings, with the store wired to the fake."""

    def _make(**overrides) -> TestClient:
        app = create_app(make_settings(**overrides))
        app.dependency_overrides[get_store] = fake_store.client
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()
