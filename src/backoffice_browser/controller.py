from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any, Awaitable, Callable, Mapping

from .clients.resource_client import ResourceEndpoint
from .collection import PaginatedCollectionCache
from .config import ClientConfig
from .debounce import DebouncedInput
from .exceptions import StateError, UnknownFacetError
from .export import BulkExportFetcher, ExportResult
from .invalidation import EventChannel, EventRule, InvalidationBusAdapter, InvalidationEffect
from .logger import get_logger, log_action
from .models import AggregateStats, PaginationMeta, PendingMutation
from .mutations import MutationCoordinator, MutationResult
from .resources import ResourceDefinition
from .state import ListingState
from .stats import AggregateStatsCache
from .synchronizer import QuerySynchronizer, SyncOutcome
from .ui_errors import BrowserError

logger = get_logger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5
DEFAULT_LARGE_PAGE_SIZE = 1000


class ResourceBrowser:
    """Generic list screen controller: one instance per mounted screen.

    The rendering side reads ``rows``, ``pagination``, ``stats``,
    ``is_loading`` and ``error`` and calls the setters. Setters must be
    called from inside a running event loop because they schedule fetches.
    """

    def __init__(
        self,
        definition: ResourceDefinition,
        client: ResourceEndpoint,
        *,
        config: ClientConfig | None = None,
        channel: EventChannel | None = None,
        scope: str | None = None,
        event_rules: Mapping[str, EventRule] | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.channel = channel
        self.event_rules = event_rules
        self._logger = log or logger
        self._listeners: list[Callable[[], None]] = []
        self._tasks: set[asyncio.Task[Any]] = set()
        self._mounted = False
        self._closed = False
        self._generation = 0
        self._build(definition, client, scope)

    def _build(self, definition: ResourceDefinition, client: ResourceEndpoint, scope: str | None) -> None:
        debounce_seconds = self.config.search_debounce_seconds if self.config else DEFAULT_DEBOUNCE_SECONDS
        stats_page_size = self.config.stats_page_size if self.config else DEFAULT_LARGE_PAGE_SIZE
        export_page_size = self.config.export_page_size if self.config else DEFAULT_LARGE_PAGE_SIZE

        self._generation += 1
        self.definition = definition
        self.client = client
        self.scope = scope
        self.state = ListingState(definition)
        self.collection = PaginatedCollectionCache()
        self.synchronizer = QuerySynchronizer(
            definition, client, self.collection, on_change=self._emit, log=self._logger
        )
        self.stats_cache = AggregateStatsCache(
            definition, client, page_size=stats_page_size, on_change=self._emit, log=self._logger
        )
        self.mutations = MutationCoordinator(
            definition,
            client,
            on_success=partial(self._after_mutation, self._generation),
            on_change=self._emit,
            log=self._logger,
        )
        self.exporter = BulkExportFetcher(definition, client, page_size=export_page_size, log=self._logger)
        self._debouncers: dict[str, DebouncedInput[str]] = {
            name: DebouncedInput(partial(self._commit_filter, name), debounce_seconds)
            for name, facet in definition.facets.items()
            if facet.kind == "text"
        }
        self.invalidation: InvalidationBusAdapter | None = None
        if self.channel is not None:
            self.invalidation = InvalidationBusAdapter(
                definition,
                self.channel,
                self._apply_invalidation,
                scope=scope,
                rules=self.event_rules,
                log=self._logger,
            )

    # -- read side -----------------------------------------------------

    @property
    def rows(self) -> tuple[dict[str, Any], ...]:
        return self.collection.rows

    @property
    def pagination(self) -> PaginationMeta:
        return self.collection.pagination

    @property
    def stats(self) -> AggregateStats | None:
        return self.stats_cache.stats

    @property
    def is_loading(self) -> bool:
        return self.synchronizer.is_loading

    @property
    def error(self) -> BrowserError | None:
        return self.synchronizer.error

    @property
    def stats_loading(self) -> bool:
        return self.stats_cache.is_loading

    @property
    def stats_error(self) -> BrowserError | None:
        return self.stats_cache.error

    @property
    def pending_mutations(self) -> tuple[PendingMutation, ...]:
        return self.mutations.pending

    @property
    def is_mounted(self) -> bool:
        return self._mounted and not self._closed

    def add_listener(self, callback: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def _remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _remove

    # -- lifecycle -----------------------------------------------------

    async def mount(self) -> None:
        if self._mounted or self._closed:
            return
        self._mounted = True
        log_action(self._logger, self.definition.name, "mount", "success", scope=self.scope)
        jobs: list[Awaitable[Any]] = [self.stats_cache.load()]
        sync = self._schedule_sync()
        if sync is not None:
            jobs.append(sync)
        try:
            await asyncio.gather(*jobs)
        finally:
            if self.invalidation is not None and not self._closed:
                self.invalidation.attach()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._teardown()
        log_action(self._logger, self.definition.name, "unmount", "success", scope=self.scope)

    async def switch_resource(
        self, definition: ResourceDefinition, client: ResourceEndpoint, scope: str | None = None
    ) -> None:
        self._teardown()
        self.stats_cache.clear()
        self.collection.clear()
        self._build(definition, client, scope)
        self._mounted = False
        self._closed = False
        self._emit()
        await self.mount()

    def _teardown(self) -> None:
        if self.invalidation is not None:
            self.invalidation.detach()
        for debouncer in self._debouncers.values():
            debouncer.cancel()
        self.synchronizer.invalidate_outstanding()
        self.stats_cache.invalidate()

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -- facet / sort / page setters -------------------------------------

    def set_filter(self, facet: str, value: str) -> asyncio.Task[SyncOutcome] | None:
        spec = self.definition.facets.get(facet)
        if spec is None:
            raise UnknownFacetError(self.definition.name, facet)
        if spec.kind == "text":
            if not isinstance(value, str):
                raise StateError(f"{self.definition.name}: facet {facet!r} expects text, got {type(value).__name__}")
            self._debouncers[facet].observe(value)
            return None
        if self.state.set_filter(facet, value):
            return self._schedule_sync()
        return None

    def flush_search(self) -> bool:
        flushed = False
        for debouncer in self._debouncers.values():
            flushed = debouncer.flush() or flushed
        return flushed

    def set_sort(self, field_name: str) -> asyncio.Task[SyncOutcome] | None:
        self.state.set_sort(field_name)
        return self._schedule_sync()

    def set_page(self, page_number: int) -> asyncio.Task[SyncOutcome] | None:
        if self.state.set_page(page_number):
            return self._schedule_sync()
        return None

    def set_page_size(self, page_size: int) -> asyncio.Task[SyncOutcome] | None:
        if self.state.set_page_size(page_size):
            return self._schedule_sync()
        return None

    def _commit_filter(self, facet: str, value: str) -> None:
        if self._closed:
            return
        if self.state.set_filter(facet, value):
            self._schedule_sync()

    def _schedule_sync(self) -> asyncio.Task[SyncOutcome] | None:
        if self._closed or not self.synchronizer.needs_sync(self.state):
            return None
        # sequence numbers are allocated here, in setter order
        descriptor = self.synchronizer.issue(self.state)
        return self._spawn(self.synchronizer.run(descriptor))

    async def refresh(self) -> SyncOutcome | None:
        if self._closed:
            return None
        return await self.synchronizer.run(self.synchronizer.issue(self.state))

    # -- mutations -------------------------------------------------------

    async def create(self, payload: Mapping[str, Any], *, dedupe_key: str | None = None) -> MutationResult:
        return await self.mutations.create(payload, dedupe_key=dedupe_key)

    async def update(self, identity: str | int, payload: Mapping[str, Any]) -> MutationResult:
        return await self.mutations.update(identity, payload)

    async def remove(self, identity: str | int, *, confirmed: bool = False) -> MutationResult:
        return await self.mutations.delete(identity, confirmed=confirmed)

    async def _after_mutation(self, generation: int, mutation: PendingMutation) -> None:
        # a coordinator from before switch_resource belongs to the old screen
        if self._closed or generation != self._generation:
            log_action(
                self._logger, self.definition.name, "mutation.resync", "ignored", operation=mutation.operation
            )
            return
        if self.definition.stats_affected_by_mutations:
            self.stats_cache.invalidate()
            self._spawn(self.stats_cache.load())
        await self.refresh()

    # -- statistics / export ---------------------------------------------

    async def refresh_stats(self) -> AggregateStats | None:
        return await self.stats_cache.load(force=True)

    async def export_all(self) -> ExportResult:
        return await self.exporter.export_all(self.state)

    async def _apply_invalidation(self, effect: InvalidationEffect) -> None:
        if self._closed:
            return
        jobs: list[Awaitable[Any]] = []
        if effect.invalidate_stats:
            self.stats_cache.invalidate()
            jobs.append(self.stats_cache.load())
        if effect.refetch:
            jobs.append(self.refresh())
        await asyncio.gather(*jobs)

    # -- plumbing --------------------------------------------------------

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener()
