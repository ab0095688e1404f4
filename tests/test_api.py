"""Tests for the /api/v1/properties endpoints."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import FETCH_DATE, SOURCE_ROWS

from catalog.api.deps import get_catalog_service
from catalog.core.config import settings
from catalog.main import app
from catalog.services.aggregator import Aggregator
from catalog.services.catalog_cache import ResilientCache
from catalog.services.catalog_service import CatalogService
from catalog.services.catalog_source import CatalogSourceAdapter

SOURCE_URL = "https://script.example.com/macros/s/abc/exec"


class FakeSheets:
    """Mock Catalog Source: serves SOURCE_ROWS and records POSTs."""

    def __init__(self):
        self.down = set()
        self.posts = []
        self.post_response = {"status": "success"}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            self.posts.append(json.loads(request.content))
            return httpx.Response(200, json=self.post_response)
        category = request.url.params["category"]
        if "ALL" in self.down or category in self.down:
            return httpx.Response(500, text="Service unavailable")
        rows = SOURCE_ROWS[category]
        return httpx.Response(200, json={"data": rows, "total": len(rows)})


class FakeClock:
    def __init__(self):
        self.now = 1_000.0

    def __call__(self):
        return self.now


@pytest.fixture
def sheets():
    return FakeSheets()


@pytest.fixture
def clock():
    return FakeClock()


def build_service(sheets, clock, base_url=SOURCE_URL) -> CatalogService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(sheets))
    adapter = CatalogSourceAdapter(client, base_url=base_url, today=lambda: FETCH_DATE)
    cache = ResilientCache(Aggregator(adapter), ttl_seconds=300, clock=clock)
    return CatalogService(adapter, cache)


@pytest.fixture
def service(sheets, clock):
    return build_service(sheets, clock)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_catalog_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def unconfigured_client(sheets, clock):
    app.dependency_overrides[get_catalog_service] = lambda: build_service(sheets, clock, base_url="")
    yield TestClient(app)
    app.dependency_overrides.clear()


# --- Catalog query ---

def test_query_envelope(client):
    response = client.get("/api/v1/properties", params={"limit": 4, "offset": 4})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["total"] == 9
    assert body["category"] == "ALL"
    assert body["servedFrom"] == "fresh"
    assert body["pagination"] == {"limit": 4, "offset": 4, "hasMore": True}
    assert [(p["category"], p["id"]) for p in body["data"]] == [
        ("commercial", "2"), ("bungalow", "2"), ("residential", "3"), ("residential", "4"),
    ]


def test_property_json_shape(client):
    body = client.get("/api/v1/properties", params={"category": "commercial", "limit": 1}).json()
    prop = body["data"][0]

    assert prop["id"] == "1"
    assert prop["transactionType"] == "buy"
    assert prop["carpetArea"] == 450.0
    assert prop["priceType"] == "total"
    assert prop["images"][0].startswith("https://res.cloudinary.com/demo/image/upload/w_520")
    assert prop["videos"] == []
    assert prop["postedDate"] == FETCH_DATE.isoformat()


def test_cache_headers(client):
    first = client.get("/api/v1/properties")
    second = client.get("/api/v1/properties", params={"offset": 3})

    assert first.headers["Cache-Control"] == settings.CACHE_CONTROL_FRESH
    assert first.headers["X-Catalog-Served-From"] == "fresh"
    assert second.headers["X-Catalog-Served-From"] == "cache"
    assert "X-Catalog-Partial" not in first.headers


def test_transaction_filter(client):
    body = client.get("/api/v1/properties", params={"transactionType": "lease"}).json()

    assert body["total"] == 2
    assert {p["transactionType"] for p in body["data"]} == {"lease"}


def test_search_filter(client):
    body = client.get("/api/v1/properties", params={"search": "kharghar"}).json()

    assert {(p["category"], p["id"]) for p in body["data"]} == {("commercial", "1"), ("residential", "1")}


def test_stale_copy_when_source_is_down(client, sheets, clock):
    client.get("/api/v1/properties", params={"category": "residential"})
    sheets.down.add("RESIDENTIAL")
    clock.now += 301

    response = client.get("/api/v1/properties", params={"category": "residential"})

    assert response.status_code == 200
    assert response.json()["servedFrom"] == "stale"
    assert response.json()["total"] == 4
    assert response.headers["Cache-Control"] == settings.CACHE_CONTROL_STALE


def test_source_down_without_cache_is_502(client, sheets):
    sheets.down.add("ALL")

    response = client.get("/api/v1/properties")

    assert response.status_code == 502
    assert response.json()["success"] is False
    assert response.json()["error"] == "Failed to fetch properties"


def test_partial_failure_is_flagged(client, sheets):
    sheets.down.add("COMMERCIAL")

    response = client.get("/api/v1/properties")

    assert response.status_code == 200
    assert response.json()["total"] == 6
    assert response.headers["X-Catalog-Partial"] == "commercial"


def test_invalid_query_is_400(client):
    response = client.get("/api/v1/properties", params={"category": "villa", "limit": "abc"})

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["fields"] == ["category", "limit"]


def test_limit_is_capped(client):
    body = client.get("/api/v1/properties", params={"limit": 10_000}).json()

    assert body["pagination"]["limit"] == settings.MAX_PAGE_LIMIT


def test_unconfigured_source_serves_empty_catalog(unconfigured_client):
    body = unconfigured_client.get("/api/v1/properties").json()

    assert body["success"] is True
    assert body["total"] == 0
    assert body["data"] == []


# --- Submissions ---

ENQUIRY = {
    "type": "enquiry",
    "name": "Asha",
    "phone": "9800000000",
    "email": "asha@example.com",
    "message": "Is it still available?",
    "property": {"configuration": "2 BHK", "carpetArea": 650, "area": "Kharghar", "price": "85 L"},
}


def test_enquiry_is_relayed(client, sheets):
    response = client.post("/api/v1/properties", json=ENQUIRY)

    assert response.status_code == 200
    assert response.json()["success"] is True
    relayed = sheets.posts[0]
    assert relayed["type"] == "enquiry"
    assert relayed["projectConfiguration"] == "2 BHK"
    assert relayed["projectCarpetSize"] == 650
    assert relayed["projectNode"] == "Kharghar"
    assert relayed["source"] == "Property Portal"
    assert "enquiryDate" in relayed


def test_enquiry_missing_fields_is_400(client, sheets):
    response = client.post("/api/v1/properties", json={**ENQUIRY, "phone": ""})

    assert response.status_code == 400
    assert response.json()["fields"] == ["phone"]
    assert sheets.posts == []


def test_unknown_submission_type_is_400(client):
    response = client.post("/api/v1/properties", json={"type": "spam"})

    assert response.status_code == 400
    assert response.json()["fields"] == ["type"]


def test_non_json_body_is_400(client):
    response = client.post("/api/v1/properties", content=b"name=Asha",
                           headers={"Content-Type": "application/x-www-form-urlencoded"})

    assert response.status_code == 400
    assert response.json()["fields"] == ["body"]


def test_property_submission(client, sheets):
    sheets.post_response = {"status": "success", "propertyId": "R-31"}

    response = client.post("/api/v1/properties", json={
        "type": "property",
        "category": "residential",
        "title": "3 BHK Sea View",
        "location": "Nerul",
        "price": "1.8 Cr",
        "bedrooms": 3,
    })

    assert response.status_code == 200
    assert response.json()["propertyId"] == "R-31"
    assert sheets.posts[0]["category"] == "RESIDENTIAL"
    assert sheets.posts[0]["bedrooms"] == 3


def test_submission_upstream_error_is_502(client, sheets):
    sheets.post_response = {"status": "error", "message": "Sheet is protected"}

    response = client.post("/api/v1/properties", json=ENQUIRY)

    assert response.status_code == 502
    assert "Sheet is protected" in response.json()["message"]


def test_submission_needs_a_configured_source(unconfigured_client):
    response = unconfigured_client.post("/api/v1/properties", json=ENQUIRY)

    assert response.status_code == 503
    assert response.json()["success"] is False


# --- Stats ---

def test_stats_update(client, sheets):
    sheets.post_response = {"status": "success", "newValue": 88}

    response = client.patch("/api/v1/properties", json={
        "propertyId": "4", "category": "commercial", "action": "like",
    })

    assert response.json() == {"success": True, "message": "Property stats updated successfully", "newValue": 88}
    assert sheets.posts[0] == {
        "action": "updateStats",
        "propertyId": "4",
        "category": "COMMERCIAL",
        "field": "Likes",
        "increment": 1,
    }


def test_stats_update_rejects_unknown_action(client):
    response = client.patch("/api/v1/properties", json={
        "propertyId": "4", "category": "commercial", "action": "share",
    })

    assert response.status_code == 400
    assert response.json()["fields"] == ["action"]


def test_stats_update_without_source(unconfigured_client):
    response = unconfigured_client.patch("/api/v1/properties", json={
        "propertyId": "4", "category": "commercial", "action": "view",
    })

    assert response.status_code == 200
    assert response.json()["newValue"] == 1


# --- Cache management ---

def test_cache_stats_and_clear(client):
    client.get("/api/v1/properties")
    client.get("/api/v1/properties", params={"category": "bungalow"})

    assert client.get("/api/v1/properties/cache/stats").json()["total_entries"] == 2
    assert client.delete("/api/v1/properties/cache").status_code == 200
    assert client.get("/api/v1/properties/cache/stats").json()["total_entries"] == 0


def test_root():
    assert TestClient(app).get("/").json()["status"] == "healthy"


def test_health_reports_the_catalog_service():
    with TestClient(app) as client:
        body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["catalog_source"] in ("configured", "not_configured")
    assert body["cache"]["ttl_seconds"] == settings.CACHE_TTL_SECONDS
