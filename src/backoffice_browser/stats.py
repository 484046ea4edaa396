from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Iterable, Mapping

from .clients.resource_client import ResourceEndpoint
from .exceptions import ApiError
from .logger import get_logger, log_action
from .models import AggregateStats
from .resources import ResourceDefinition, StatsSpec
from .ui_errors import BrowserError, to_browser_error

logger = get_logger(__name__)


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def derive_stats(rows: Iterable[Mapping[str, Any]], spec: StatsSpec) -> AggregateStats:
    materialized = list(rows)
    total = len(materialized)

    status_counts: dict[str, int] = {"all": total}
    status_counts.update({status: 0 for status in spec.statuses})
    if spec.status_field:
        for row in materialized:
            raw = row.get(spec.status_field)
            if raw is None:
                continue
            key = str(raw)
            status_counts[key] = status_counts.get(key, 0) + 1

    sums: dict[str, float] = {}
    for name in spec.sum_fields:
        sums[name] = sum(number for number in (_as_number(row.get(name)) for row in materialized) if number is not None)
    averages = {name: (value / total if total else 0.0) for name, value in sums.items()}
    return AggregateStats(total=total, status_counts=status_counts, sums=sums, averages=averages)


class AggregateStatsCache:
    """Whole-collection summary, fetched apart from the paginated view.

    Filter and page changes never reach this cache. ``load`` serves the
    cached value until ``invalidate`` marks it dirty; concurrent loads share
    one request.
    """

    def __init__(
        self,
        definition: ResourceDefinition,
        endpoint: ResourceEndpoint,
        *,
        page_size: int = 1000,
        on_change: Callable[[], None] | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.definition = definition
        self.endpoint = endpoint
        self.page_size = page_size
        self.error: BrowserError | None = None
        self.fetch_count = 0
        self._on_change = on_change
        self._logger = log or logger
        self._stats: AggregateStats | None = None
        self._dirty = True
        self._generation = 0
        self._task: asyncio.Task[AggregateStats | None] | None = None
        self._task_generation = -1

    @property
    def stats(self) -> AggregateStats | None:
        return self._stats

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def is_loading(self) -> bool:
        return self._task is not None and not self._task.done()

    async def load(self, force: bool = False) -> AggregateStats | None:
        if force:
            self.invalidate()
        if not self._dirty and self._stats is not None:
            return self._stats
        if self._task is None or self._task.done() or self._task_generation != self._generation:
            self._task_generation = self._generation
            self._task = asyncio.ensure_future(self._fetch(self._generation))
            self._notify()
        return await asyncio.shield(self._task)

    def invalidate(self) -> None:
        self._generation += 1
        self._dirty = True

    def clear(self) -> None:
        self.invalidate()
        self._stats = None
        self.error = None

    async def _fetch(self, generation: int) -> AggregateStats | None:
        self.fetch_count += 1
        try:
            if self.definition.stats.server_path:
                stats = await self.endpoint.stats()
            else:
                page = await self.endpoint.list({"page": 1, "per_page": self.page_size})
                stats = derive_stats(page.rows, self.definition.stats)
        except ApiError as exc:
            if generation == self._generation:
                self.error = to_browser_error(exc)
                log_action(self._logger, self.definition.name, "stats.load", "error", trace_id=exc.trace_id, code=exc.code)
            return self._stats
        finally:
            self._notify()

        if generation != self._generation:
            self._logger.debug("discarding statistics of generation %s", generation)
            return self._stats
        self._stats = stats
        self._dirty = False
        self.error = None
        log_action(self._logger, self.definition.name, "stats.load", "success", total=stats.total)
        self._notify()
        return stats

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()
