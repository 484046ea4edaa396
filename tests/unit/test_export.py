from __future__ import annotations

import asyncio

from backoffice_browser.export import BulkExportFetcher, normalize_value, sanitize_row, write_csv
from backoffice_browser.resources import BRANDS, ORDERS
from backoffice_browser.state import ListingState
from backoffice_browser.ui_errors import ErrorKind

from tests.browser_helpers import FakeEndpoint, make_rows, transport_error


def test_filtered_export_uses_current_filters_and_sort_from_page_one() -> None:
    endpoint = FakeEndpoint(make_rows(3, status="pending"))
    fetcher = BulkExportFetcher(ORDERS, endpoint, page_size=1000)
    state = ListingState(ORDERS)
    state.set_filter("status", "shipping")
    state.set_sort("customer")
    state.set_page(4)

    params = fetcher.build_params(state)

    assert params == {
        "page": 1,
        "per_page": 1000,
        "sort_field": "user.name",
        "sort_order": "desc",
        "status": "shipped",
    }


def test_global_export_ignores_filters() -> None:
    endpoint = FakeEndpoint([{"id": 1, "name": "Acme"}, {"id": 2, "name": "Zen"}])
    fetcher = BulkExportFetcher(BRANDS, endpoint, page_size=500)
    state = ListingState(BRANDS)
    state.set_filter("search", "zen")

    result = asyncio.run(fetcher.export_all(state))

    assert endpoint.list_calls == [{"page": 1, "per_page": 500, "sort_field": "name", "sort_order": "asc"}]
    assert result.ok
    assert [row["name"] for row in result.rows] == ["Acme", "Zen"]
    assert result.total == 2


def test_export_failure_is_returned_not_raised() -> None:
    endpoint = FakeEndpoint(make_rows(2))
    endpoint.fail(transport_error())
    fetcher = BulkExportFetcher(ORDERS, endpoint)

    result = asyncio.run(fetcher.export_all(ListingState(ORDERS)))

    assert not result.ok
    assert result.error is not None and result.error.kind is ErrorKind.TRANSPORT
    assert result.rows == ()
    assert fetcher.is_exporting is False


def test_sanitize_row_blanks_sensitive_columns() -> None:
    row = {"id": 1, "name": "  Ana ", "api_token": "abc", "notes": "", "tags": ["a", "b"], "active": True}

    sanitized = sanitize_row(row, headers=["id", "name", "api_token", "notes", "tags", "active", "missing"])

    assert sanitized == {
        "id": "1",
        "name": "Ana",
        "api_token": "—",
        "notes": "—",
        "tags": '["a", "b"]',
        "active": "true",
        "missing": "—",
    }
    assert normalize_value(None) == "—"


def test_write_csv_creates_file_with_metadata(tmp_path) -> None:
    out_dir = tmp_path / "exports"
    rows = [{"id": 1, "name": "Main", "password": "hunter2"}]

    path = write_csv(
        module="customers",
        rows=rows,
        headers=["id", "name", "password"],
        output_dir=out_dir,
        filters={"status": "active"},
    )

    assert path.exists()
    assert path.name.startswith("customers_")
    content = path.read_text(encoding="utf-8-sig")
    assert "# module: customers" in content
    assert "# filters: {'status': 'active'}" in content
    assert "id,name,password" in content
    assert "1,Main,—" in content
    assert "hunter2" not in content
