import json

import httpx
import pytest

from tech_matrix.config import ConfigurationError
from tech_matrix.restdb import (
    NEWEST_FIRST,
    Projection,
    RestDbClient,
    SortSpec,
    StoreFilter,
    UpstreamError,
    UpstreamUnavailable,
    build_list_params,
)

from conftest import API_KEY, BASE, COLLECTION, make_settings


def test_store_filter_drops_blank_values():
    store_filter = StoreFilter.exact(customerName=" Acme ", category="", customerId=None)
    assert store_filter.fields == {"customerName": "Acme"}


def test_build_list_params_encodes_json():
    params = build_list_params(
        StoreFilter.exact(customerName="Acme", category="AI"),
        NEWEST_FIRST,
        Projection(["customerName"]),
    )
    assert json.loads(params["q"]) == {"customerName": "Acme", "category": "AI"}
    assert json.loads(params["sort"]) == {"createdAt": -1}
    assert json.loads(params["h"]) == {"$fields": {"customerName": 1}}


def test_build_list_params_omits_empty_parts():
    assert build_list_params(StoreFilter(), SortSpec("createdAt")) == {
        "sort": '{"createdAt":1}'
    }
    assert build_list_params() == {}


def test_urls_strip_trailing_slash_and_encode():
    client = RestDbClient("https://db.example.com/", "tech matrix", "k")
    assert client.collection_url == "https://db.example.com/rest/tech%20matrix"
    assert client.record_url("a/b") == "https://db.example.com/rest/tech%20matrix/a%2Fb"


def test_from_settings_names_every_missing_setting():
    settings = make_settings(restdb_base=None, restdb_api_key="  ")
    with pytest.raises(ConfigurationError) as excinfo:
        RestDbClient.from_settings(settings)
    assert str(excinfo.value) == "Missing env vars: RESTDB_BASE, RESTDB_API_KEY"


def test_requests_carry_api_key(fake_store):
    fake_store.client().list()
    request = fake_store.requests[-1]
    assert request.headers["x-apikey"] == API_KEY
    assert request.headers["content-type"] == "application/json"
    assert request.url.path == f"/rest/{COLLECTION}"


def test_list_filters_and_sorts(fake_store):
    fake_store.seed(
        {"customerName": "Acme", "category": "AI", "createdAt": "2026-01-01T00:00:00.000Z"},
        {"customerName": "Acme", "category": "MSP", "createdAt": "2026-01-03T00:00:00.000Z"},
        {"customerName": "Other", "category": "AI", "createdAt": "2026-01-02T00:00:00.000Z"},
    )
    items = fake_store.client().list(StoreFilter.exact(customerName="Acme"))
    assert [i["category"] for i in items] == ["MSP", "AI"]


def test_list_returns_empty_for_null_body():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="null"))
    client = RestDbClient(BASE, COLLECTION, API_KEY, transport=transport)
    assert client.list() == []


def test_create_returns_store_document(fake_store):
    created = fake_store.client().create({"customerName": "Acme"})
    assert created["customerName"] == "Acme"
    assert created["_id"]
    assert fake_store.docs == [created]


def test_upstream_json_error_passes_through():
    transport = httpx.MockTransport(
        lambda request: httpx.Response(400, json={"name": "ValidationError"})
    )
    client = RestDbClient(BASE, COLLECTION, API_KEY, transport=transport)
    with pytest.raises(UpstreamError) as excinfo:
        client.create({"customerName": "Acme"})
    assert excinfo.value.status_code == 400
    assert excinfo.value.body == {"name": "ValidationError"}


def test_upstream_text_error_passes_through():
    transport = httpx.MockTransport(
        lambda request: httpx.Response(503, text="Service Unavailable")
    )
    client = RestDbClient(BASE, COLLECTION, API_KEY, transport=transport)
    with pytest.raises(UpstreamError) as excinfo:
        client.list()
    assert excinfo.value.status_code == 503
    assert excinfo.value.body == "Service Unavailable"


def test_delete_missing_record(fake_store):
    with pytest.raises(UpstreamError) as excinfo:
        fake_store.client().delete("does-not-exist")
    assert excinfo.value.status_code == 404
    assert excinfo.value.body == {"message": "Record not found", "id": "does-not-exist"}


def test_delete_empty_error_body_gets_default_message():
    transport = httpx.MockTransport(lambda request: httpx.Response(500))
    client = RestDbClient(BASE, COLLECTION, API_KEY, transport=transport)
    with pytest.raises(UpstreamError) as excinfo:
        client.delete("abc")
    assert excinfo.value.body == "Delete failed"


def test_unreachable_store_raises():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = RestDbClient(BASE, COLLECTION, API_KEY, transport=httpx.MockTransport(refuse))
    with pytest.raises(UpstreamUnavailable):
        client.list()
