from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from backoffice_browser.clients import ResourceClient
from backoffice_browser.exceptions import NotFoundError, TransportError, ValidationError
from backoffice_browser.http_client import AsyncHttpClient
from backoffice_browser.resources import ORDERS, REVIEWS, ResourceDefinition, StatsSpec, FacetSpec
from backoffice_browser.tracing import TRACE_HEADER, TraceContext

from tests.browser_helpers import make_config


def _http(handler) -> AsyncHttpClient:
    return AsyncHttpClient(make_config(), trace=TraceContext(session_id="sess"), transport=httpx.MockTransport(handler))


def test_list_sends_params_and_parses_backend_envelope() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "success": True,
                "data": [{"id": 7, "status": "pending"}],
                "meta": {"current_page": 2, "per_page": 10, "total": 11, "last_page": 2, "from": 11, "to": 11},
            },
        )

    async def scenario():
        http = _http(handler)
        client = ResourceClient(http=http, definition=ORDERS, access_token="secret-token")
        try:
            return await client.list({"page": 2, "per_page": 10, "sort_field": "created_at", "sort_order": "desc"})
        finally:
            await http.aclose()

    result = asyncio.run(scenario())

    request = seen[0]
    assert request.url.path == "/admin/orders"
    assert request.url.params["page"] == "2"
    assert request.url.params["sort_field"] == "created_at"
    assert request.headers["Authorization"] == "Bearer secret-token"
    assert request.headers["Accept"] == "application/json"
    assert request.headers[TRACE_HEADER].startswith("sess-")
    assert result.rows == ({"id": 7, "status": "pending"},)
    assert result.total == 11
    assert result.last_page == 2
    assert result.range_start == 11


def test_list_without_meta_is_a_single_page() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"id": 1}, {"id": 2}])

    async def scenario():
        http = _http(handler)
        try:
            return await ResourceClient(http=http, definition=ORDERS).list({"page": 1, "per_page": 10})
        finally:
            await http.aclose()

    result = asyncio.run(scenario())

    assert result.total == 2
    assert result.last_page == 1
    assert result.range_end == 2


def test_missing_last_page_is_computed_from_total() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"rows": [], "pagination": {"current_page": 1, "per_page": 10, "total": 47}})

    async def scenario():
        http = _http(handler)
        try:
            return await ResourceClient(http=http, definition=ORDERS).list({"page": 1, "per_page": 10})
        finally:
            await http.aclose()

    assert asyncio.run(scenario()).last_page == 5


def test_validation_failure_carries_field_errors_and_server_trace() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            422,
            json={"message": "The given data was invalid.", "errors": {"name": ["The name field is required."]}},
            headers={"X-Request-ID": "srv-123"},
        )

    async def scenario():
        http = _http(handler)
        try:
            await ResourceClient(http=http, definition=ORDERS).create({"name": ""})
        finally:
            await http.aclose()

    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.field_errors == {"name": ["The name field is required."]}
    assert excinfo.value.trace_id == "srv-123"


def test_create_sends_idempotency_key_and_unwraps_data() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"success": True, "data": {"id": 3, "name": "Serum"}})

    async def scenario():
        http = _http(handler)
        try:
            return await ResourceClient(http=http, definition=ORDERS).create({"name": "Serum"}, idempotency_key="key-1")
        finally:
            await http.aclose()

    created = asyncio.run(scenario())

    assert created == {"id": 3, "name": "Serum"}
    assert seen[0].method == "POST"
    assert seen[0].headers["Idempotency-Key"] == "key-1"
    assert json.loads(seen[0].content) == {"name": "Serum"}


def test_delete_with_empty_body_returns_none_and_records_operation() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    async def scenario():
        http = _http(handler)
        try:
            result = await ResourceClient(http=http, definition=ORDERS).delete(42)
            return result, http.last_operation
        finally:
            await http.aclose()

    result, last_operation = asyncio.run(scenario())

    assert result is None
    assert seen[0].method == "DELETE"
    assert seen[0].url.path == "/admin/orders/42"
    assert last_operation is not None
    assert last_operation.module == "orders"
    assert last_operation.operation == "delete"
    assert last_operation.result == "success"


def test_not_found_on_update() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Order not found"})

    async def scenario():
        http = _http(handler)
        try:
            await ResourceClient(http=http, definition=ORDERS).update(99, {"status": "shipped"})
        finally:
            await http.aclose()

    with pytest.raises(NotFoundError, match="Order not found"):
        asyncio.run(scenario())


@pytest.mark.parametrize(
    ("raised", "code"),
    [
        (httpx.ReadTimeout("timed out"), "TIMEOUT_ERROR"),
        (httpx.ConnectError("connection refused"), "NETWORK_ERROR"),
    ],
)
def test_transport_failures_are_mapped(raised: Exception, code: str) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise raised

    async def scenario():
        http = _http(handler)
        try:
            await ResourceClient(http=http, definition=ORDERS).list({"page": 1, "per_page": 10})
        finally:
            await http.aclose()

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.code == code
    assert excinfo.value.status_code == 0


def test_scoped_paths_and_server_stats() -> None:
    seen: list[str] = []
    definition = ResourceDefinition(
        name="scoped",
        list_path="/products/{scope}/reviews",
        facets={"rating": FacetSpec()},
        sortable=("created_at",),
        default_sort="created_at",
        stats=StatsSpec(server_path="/products/{scope}/reviews/stats"),
    )

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        if request.url.path.endswith("/stats"):
            return httpx.Response(200, json={"data": {"total": 4, "status_counts": {"all": 4}}})
        return httpx.Response(200, json={"data": [], "meta": {"total": 0}})

    async def scenario():
        http = _http(handler)
        try:
            client = ResourceClient(http=http, definition=definition, scope="serum-a")
            await client.list({"page": 1, "per_page": 10})
            return await client.stats()
        finally:
            await http.aclose()

    stats = asyncio.run(scenario())

    assert seen == ["/products/serum-a/reviews", "/products/serum-a/reviews/stats"]
    assert stats.total == 4


def test_scoped_path_without_scope_is_rejected() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    async def scenario():
        http = _http(handler)
        try:
            await ResourceClient(http=http, definition=REVIEWS).list({"page": 1, "per_page": 10})
        finally:
            await http.aclose()

    with pytest.raises(ValueError, match="scope"):
        asyncio.run(scenario())


def test_success_status_with_html_body_is_an_invalid_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>", headers={"Content-Type": "text/html"})

    async def scenario():
        http = _http(handler)
        try:
            await ResourceClient(http=http, definition=ORDERS).list({"page": 1, "per_page": 10})
        finally:
            await http.aclose()

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.code == "INVALID_RESPONSE"
    assert excinfo.value.status_code == 200
    assert excinfo.value.trace_id is not None and excinfo.value.trace_id.startswith("sess-")


def test_unreadable_pagination_meta_is_an_invalid_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": [{"id": 1}], "meta": {"total": "lots", "per_page": 10}})

    async def scenario():
        http = _http(handler)
        try:
            await ResourceClient(http=http, definition=ORDERS).list({"page": 1, "per_page": 10})
        finally:
            await http.aclose()

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.code == "INVALID_RESPONSE"
    assert "orders list" in excinfo.value.message


def test_unreadable_server_stats_are_an_invalid_response() -> None:
    definition = ResourceDefinition(
        name="scoped",
        list_path="/products/{scope}/reviews",
        facets={"rating": FacetSpec()},
        sortable=("created_at",),
        default_sort="created_at",
        stats=StatsSpec(server_path="/products/{scope}/reviews/stats"),
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": {"total": "many"}})

    async def scenario():
        http = _http(handler)
        try:
            await ResourceClient(http=http, definition=definition, scope="serum-a").stats()
        finally:
            await http.aclose()

    with pytest.raises(TransportError, match="unreadable totals"):
        asyncio.run(scenario())


def test_resource_client_requires_definition_by_keyword() -> None:
    http = _http(lambda request: httpx.Response(200, json=[]))

    with pytest.raises(TypeError):
        ResourceClient(http, ORDERS)  # type: ignore[call-arg]

    asyncio.run(http.aclose())
