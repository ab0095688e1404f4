"""Tests for the Catalog Source adapter against a mocked HTTP transport."""

import asyncio
import logging

import httpx
import pytest

from conftest import FETCH_DATE, RESIDENTIAL_ROWS, SOURCE_ROWS

from catalog.core.errors import UpstreamError, ValidationError
from catalog.models.filter import PropertyFilter
from catalog.models.property import Category, TransactionType
from catalog.services.catalog_source import CatalogSourceAdapter
from catalog.services.normalizer import CATEGORY_LAYOUTS

SOURCE_URL = "https://script.example.com/macros/s/abc/exec"


def sheet_handler(request: httpx.Request) -> httpx.Response:
    rows = SOURCE_ROWS[request.url.params["category"]]
    return httpx.Response(200, json={"data": rows, "total": len(rows)})


def run_fetch(handler, category, property_filter=None, base_url=SOURCE_URL):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            adapter = CatalogSourceAdapter(client, base_url=base_url, today=lambda: FETCH_DATE)
            return await adapter.fetch(category, property_filter)

    return asyncio.run(go())


def test_fetch_normalizes_rows():
    properties = run_fetch(sheet_handler, Category.RESIDENTIAL)

    assert [p.id for p in properties] == ["1", "2", "3", "4"]
    assert all(p.category == Category.RESIDENTIAL for p in properties)
    assert all(p.posted_date == FETCH_DATE for p in properties)


def test_request_names_the_sheet():
    seen = []

    def handler(request):
        seen.append(dict(request.url.params))
        return httpx.Response(200, json={"data": []})

    run_fetch(handler, Category.BUNGALOW)

    assert seen == [{"category": "BUNGALOW", "sheet": "Bungalow Projects", "columns": "7"}]


def test_transaction_filter_uses_derived_type():
    lease = run_fetch(sheet_handler, Category.RESIDENTIAL, PropertyFilter(transaction_type="lease"))
    buy = run_fetch(sheet_handler, Category.RESIDENTIAL, PropertyFilter(transaction_type="buy"))

    assert [p.id for p in lease] == ["2"]
    # Row 3 has a blank BUY/Lease cell and counts as buy
    assert [p.id for p in buy] == ["1", "3", "4"]
    assert all(p.transaction_type == TransactionType.BUY for p in buy)


def test_missing_sheet_is_empty():
    assert run_fetch(lambda request: httpx.Response(404), Category.COMMERCIAL) == []
    assert run_fetch(lambda request: httpx.Response(200, json={"total": 0}), Category.COMMERCIAL) == []
    assert run_fetch(lambda request: httpx.Response(200, json={"data": None}), Category.COMMERCIAL) == []



def test_rows_that_are_not_lists_are_skipped_with_a_warning(caplog):
    rows = [{"id": "9", "title": "Shop"}, RESIDENTIAL_ROWS[0], "junk"]

    def handler(request):
        return httpx.Response(200, json={"data": rows, "total": len(rows)})

    with caplog.at_level(logging.WARNING, logger="catalog.services.catalog_source"):
        properties = run_fetch(handler, Category.RESIDENTIAL)

    assert [p.id for p in properties] == ["1"]
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "skipped 2 residential rows" in warnings[0].getMessage()


@pytest.mark.parametrize("response", [
    httpx.Response(500, text="Internal error"),
    httpx.Response(200, text="<html>Sign in</html>"),
    httpx.Response(200, json=["not", "a", "dict"]),
    httpx.Response(200, json={"data": "oops"}),
    httpx.Response(200, json={"status": "error", "message": "Sheet locked"}),
])
def test_bad_responses_raise_upstream_error(response):
    with pytest.raises(UpstreamError) as exc_info:
        run_fetch(lambda request: response, Category.COMMERCIAL)

    assert exc_info.value.category == "commercial"


def test_transport_failure_raises_upstream_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError):
        run_fetch(handler, Category.RESIDENTIAL)


def test_unconfigured_source_returns_nothing():
    def handler(request):
        raise AssertionError("no request expected")

    assert run_fetch(handler, Category.RESIDENTIAL, base_url="") == []


def test_unknown_category_is_rejected():
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(sheet_handler)) as client:
            adapter = CatalogSourceAdapter(
                client,
                base_url=SOURCE_URL,
                layouts={Category.RESIDENTIAL: CATEGORY_LAYOUTS[Category.RESIDENTIAL]},
            )
            await adapter.fetch(Category.BUNGALOW)

    with pytest.raises(ValidationError):
        asyncio.run(go())


def test_submit_relays_payload():
    received = []

    def handler(request):
        received.append(request)
        return httpx.Response(200, json={"status": "success", "propertyId": "P-9"})

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            adapter = CatalogSourceAdapter(client, base_url=SOURCE_URL)
            return await adapter.submit({"type": "property", "title": "Shop"})

    body = asyncio.run(go())

    assert body["propertyId"] == "P-9"
    assert received[0].method == "POST"


def test_submit_error_status_raises():
    async def go():
        handler = lambda request: httpx.Response(200, json={"status": "error", "message": "quota"})
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await CatalogSourceAdapter(client, base_url=SOURCE_URL).submit({"type": "enquiry"})

    with pytest.raises(UpstreamError, match="quota"):
        asyncio.run(go())
