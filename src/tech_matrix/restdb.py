"""
Client for the hosted document store (restdb.io REST convention).

Collection-scoped calls live under ``<base>/rest/<collection>``. Listing takes
JSON-encoded ``q`` (filter), ``sort`` and ``h`` (hints, used for field
projection) query parameters. Those encodings are built here and nowhere else.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx
import structlog

from .config import Settings

logger = structlog.get_logger(__name__)


class UpstreamError(Exception):
    """The store answered with a non-2xx status."""

    def __init__(self, status_code: int, body: Any):
        super().__init__(f"Upstream returned HTTP {status_code}")
        self.status_code = status_code
        self.body = body


class UpstreamUnavailable(Exception):
    """The store could not be reached at all."""


@dataclass(frozen=True)
class StoreFilter:
    """Exact-match filter on document fields; blank values are ignored."""

    fields: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def exact(cls, **values: Optional[str]) -> "StoreFilter":
        cleaned = {}
        for key, value in values.items():
            text = (value or "").strip()
            if text:
                cleaned[key] = text
        return cls(cleaned)

    def is_empty(self) -> bool:
        return not self.fields


@dataclass(frozen=True)
class SortSpec:
    field: str
    descending: bool = False


NEWEST_FIRST = SortSpec("createdAt", descending=True)


@dataclass(frozen=True)
class Projection:
    fields: Sequence[str]


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def build_list_params(
    store_filter: Optional[StoreFilter] = None,
    sort: Optional[SortSpec] = None,
    projection: Optional[Projection] = None,
) -> Dict[str, str]:
    """Serialize list descriptors into the store's query parameters."""
    params: Dict[str, str] = {}
    if store_filter is not None and not store_filter.is_empty():
        params["q"] = _dumps(store_filter.fields)
    if sort is not None:
        params["sort"] = _dumps({sort.field: -1 if sort.descending else 1})
    if projection is not None and projection.fields:
        params["h"] = _dumps({"$fields": {name: 1 for name in projection.fields}})
    return params


def _parse_body(response: httpx.Response) -> Any:
    """Return the JSON body when it parses, else the raw text."""
    try:
        return response.json()
    except ValueError:
        return response.text


class RestDbClient:
    """CRUD access to a single collection of the document store."""

    def __init__(
        self,
        base_url: str,
        collection: str,
        api_key: str,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.strip().rstrip("/")
        self.collection = collection.strip()
        self._api_key = api_key.strip()
        self._transport = transport

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.BaseTransport | None = None
    ) -> "RestDbClient":
        """Build a client, raising ConfigurationError if any setting is missing."""
        settings.require_store_settings()
        return cls(
            settings.restdb_base,
            settings.restdb_collection,
            settings.restdb_api_key,
            transport=transport,
        )

    @property
    def collection_url(self) -> str:
        return f"{self.base_url}/rest/{quote(self.collection, safe='')}"

    def record_url(self, record_id: str) -> str:
        return f"{self.collection_url}/{quote(record_id, safe='')}"

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json", "x-apikey": self._api_key}

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            with httpx.Client(transport=self._transport) as client:
                return client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            logger.error("upstream_unreachable", method=method, error=str(exc))
            raise UpstreamUnavailable(f"Document store unreachable: {exc}") from exc

    def _raise_for_status(self, response: httpx.Response, body: Any) -> None:
        if response.is_success:
            return
        logger.warning(
            "upstream_error",
            method=response.request.method,
            status_code=response.status_code,
        )
        raise UpstreamError(response.status_code, body)

    def list(
        self,
        store_filter: Optional[StoreFilter] = None,
        sort: Optional[SortSpec] = NEWEST_FIRST,
        projection: Optional[Projection] = None,
    ) -> List[Dict[str, Any]]:
        """Return matching documents; an empty or unparsable 2xx body means none."""
        params = build_list_params(store_filter, sort, projection)
        response = self._request("GET", self.collection_url, params=params)
        body = _parse_body(response)
        self._raise_for_status(response, body)
        if not isinstance(body, list):
            return []
        return body

    def create(self, document: Dict[str, Any]) -> Any:
        """POST a full document; the store assigns its identifier."""
        response = self._request(
            "POST", self.collection_url, content=_dumps(document).encode("utf-8")
        )
        body = _parse_body(response)
        self._raise_for_status(response, body)
        return body

    def delete(self, record_id: str) -> None:
        response = self._request("DELETE", self.record_url(record_id))
        if response.is_success:
            return
        self._raise_for_status(response, _parse_body(response) or "Delete failed")
