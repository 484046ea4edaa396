from __future__ import annotations

import asyncio

import pytest

from backoffice_browser.resources import ORDERS, PRODUCTS, FacetSpec, ResourceDefinition, StatsSpec
from backoffice_browser.stats import AggregateStatsCache, derive_stats
from backoffice_browser.ui_errors import ErrorKind

from tests.browser_helpers import FakeEndpoint, make_rows, transport_error


def test_derive_stats_counts_sums_and_averages() -> None:
    rows = [
        {"status": "pending", "total": "10.50"},
        {"status": "shipped", "total": 20},
        {"status": "shipped", "total": None},
        {"status": "refunded", "total": 9.5},
    ]

    stats = derive_stats(rows, ORDERS.stats)

    assert stats.total == 4
    assert stats.status_counts == {
        "all": 4,
        "pending": 1,
        "shipped": 2,
        "delivered": 0,
        "cancelled": 0,
        "refunded": 1,
    }
    assert stats.sums == {"total": pytest.approx(40.0)}
    assert stats.averages == {"total": pytest.approx(10.0)}


def test_derive_stats_of_empty_collection() -> None:
    stats = derive_stats([], PRODUCTS.stats)

    assert stats.total == 0
    assert stats.status_counts["all"] == 0
    assert stats.averages == {"stock": 0.0}


def test_load_fetches_once_until_invalidated() -> None:
    endpoint = FakeEndpoint(make_rows(12))
    cache = AggregateStatsCache(PRODUCTS, endpoint, page_size=1000)

    async def scenario():
        first = await cache.load()
        second = await cache.load()
        cache.invalidate()
        third = await cache.load()
        return first, second, third

    first, second, third = asyncio.run(scenario())

    assert first is second
    assert third is not first
    assert cache.fetch_count == 2
    assert endpoint.list_calls == [{"page": 1, "per_page": 1000}, {"page": 1, "per_page": 1000}]
    assert third.total == 12
    assert third.status_counts["available"] == 12


def test_concurrent_loads_share_one_fetch() -> None:
    endpoint = FakeEndpoint(make_rows(3))
    cache = AggregateStatsCache(PRODUCTS, endpoint)

    async def scenario():
        return await asyncio.gather(cache.load(), cache.load(), cache.load())

    results = asyncio.run(scenario())

    assert cache.fetch_count == 1
    assert all(result is results[0] for result in results)


def test_server_aggregate_endpoint_is_used_when_declared() -> None:
    definition = ResourceDefinition(
        name="products_with_stats",
        list_path="/products",
        facets={"status": FacetSpec()},
        sortable=("created_at",),
        default_sort="created_at",
        stats=StatsSpec(server_path="/products/stats"),
    )
    endpoint = FakeEndpoint(make_rows(4))
    cache = AggregateStatsCache(definition, endpoint)

    stats = asyncio.run(cache.load())

    assert endpoint.stats_calls == 1
    assert endpoint.list_calls == []
    assert stats is not None and stats.total == 4


def test_invalidate_during_fetch_discards_old_result() -> None:
    endpoint = FakeEndpoint(make_rows(3))
    cache = AggregateStatsCache(PRODUCTS, endpoint)

    async def scenario():
        gate = endpoint.hold(per_page=1000)
        task = asyncio.ensure_future(cache.load())
        await asyncio.sleep(0)
        assert cache.is_loading is True
        cache.invalidate()
        gate.set()
        return await task

    assert asyncio.run(scenario()) is None
    assert cache.stats is None
    assert cache.is_dirty is True


def test_failed_reload_keeps_previous_figures() -> None:
    endpoint = FakeEndpoint(make_rows(6))
    cache = AggregateStatsCache(PRODUCTS, endpoint)

    async def scenario():
        before = await cache.load()
        endpoint.fail(transport_error(), per_page=1000)
        after = await cache.load(force=True)
        return before, after

    before, after = asyncio.run(scenario())

    assert after is before
    assert cache.stats is before
    assert cache.error is not None
    assert cache.error.kind is ErrorKind.TRANSPORT
    assert cache.is_dirty is True
