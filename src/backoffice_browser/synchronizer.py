from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping

from .clients.resource_client import ResourceEndpoint
from .collection import PaginatedCollectionCache
from .exceptions import ApiError
from .logger import get_logger, log_action
from .resources import ResourceDefinition
from .state import ListingState, PageState, RequestKey, SortState
from .ui_errors import BrowserError, to_browser_error

logger = get_logger(__name__)


@dataclass(frozen=True)
class RequestDescriptor:
    sequence: int
    key: RequestKey
    filters: Mapping[str, str]
    sort: SortState
    page: PageState

    @classmethod
    def capture(cls, state: ListingState, sequence: int) -> "RequestDescriptor":
        return cls(
            sequence=sequence,
            key=state.request_key(),
            filters=MappingProxyType(dict(state.filters)),
            sort=state.sort,
            page=state.page,
        )

    def to_params(
        self,
        definition: ResourceDefinition,
        *,
        page_number: int | None = None,
        page_size: int | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "page": page_number if page_number is not None else self.page.page_number,
            "per_page": page_size if page_size is not None else self.page.page_size,
            "sort_field": definition.server_sort_field(self.sort.field),
            "sort_order": self.sort.direction,
        }
        for facet, value in self.filters.items():
            server_value = definition.facets[facet].server_value(value)
            if server_value is not None:
                params[definition.facet_param(facet)] = server_value
        return params


class SyncOutcome(str, Enum):
    APPLIED = "applied"
    STALE = "stale"
    FAILED = "failed"


class QuerySynchronizer:
    """Issues list fetches and applies only the newest one.

    Each fetch is tagged with a sequence number owned by this instance. A
    response whose number is no longer the highest issued is dropped; the
    network call itself is never cancelled.
    """

    def __init__(
        self,
        definition: ResourceDefinition,
        endpoint: ResourceEndpoint,
        collection: PaginatedCollectionCache,
        *,
        on_change: Callable[[], None] | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.definition = definition
        self.endpoint = endpoint
        self.collection = collection
        self.error: BrowserError | None = None
        self._on_change = on_change
        self._logger = log or logger
        self._issued = 0
        self._in_flight: dict[int, RequestDescriptor] = {}
        self._last_issued_key: RequestKey | None = None

    @property
    def latest_sequence(self) -> int:
        return self._issued

    @property
    def is_loading(self) -> bool:
        return self._issued in self._in_flight

    @property
    def in_flight(self) -> tuple[RequestDescriptor, ...]:
        return tuple(self._in_flight.values())

    def needs_sync(self, state: ListingState) -> bool:
        return state.request_key() != self._last_issued_key

    def issue(self, state: ListingState) -> RequestDescriptor:
        self._issued += 1
        descriptor = RequestDescriptor.capture(state, self._issued)
        self._in_flight[descriptor.sequence] = descriptor
        self._last_issued_key = descriptor.key
        self._notify()
        return descriptor

    def is_current(self, descriptor: RequestDescriptor) -> bool:
        return descriptor.sequence == self._issued

    async def run(self, descriptor: RequestDescriptor) -> SyncOutcome:
        params = descriptor.to_params(self.definition)
        try:
            result = await self.endpoint.list(params)
        except ApiError as exc:
            if not self.is_current(descriptor):
                self._logger.debug("discarding failure of superseded request %s", descriptor.sequence)
                return SyncOutcome.STALE
            self.error = to_browser_error(exc)
            log_action(
                self._logger,
                self.definition.name,
                "list.sync",
                "error",
                trace_id=exc.trace_id,
                sequence=descriptor.sequence,
                code=exc.code,
            )
            return SyncOutcome.FAILED
        finally:
            self._in_flight.pop(descriptor.sequence, None)
            self._notify()

        if not self.is_current(descriptor):
            self._logger.debug(
                "discarding response of request %s, latest is %s", descriptor.sequence, self._issued
            )
            return SyncOutcome.STALE
        self.collection.replace(result, descriptor.sequence)
        self.error = None
        log_action(
            self._logger,
            self.definition.name,
            "list.sync",
            "success",
            sequence=descriptor.sequence,
            total=result.total,
            page=descriptor.page.page_number,
        )
        self._notify()
        return SyncOutcome.APPLIED

    async def synchronize(self, state: ListingState) -> SyncOutcome:
        return await self.run(self.issue(state))

    def invalidate_outstanding(self) -> None:
        """Make every issued descriptor stale (unmount or resource switch)."""
        self._issued += 1
        self._last_issued_key = None
        self.error = None

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()
