from .clients import ResourceClient, ResourceEndpoint
from .config import ClientConfig, ConfigError, load_config
from .controller import ResourceBrowser
from .exceptions import (
    ApiError,
    ConfirmationRequiredError,
    NotFoundError,
    StateError,
    TransportError,
    UnknownFacetError,
    ValidationError,
)
from .export import BulkExportFetcher, ExportResult, write_csv
from .http_client import AsyncHttpClient
from .invalidation import DEFAULT_EVENT_RULES, EventRule, InvalidationBusAdapter, LocalEventChannel, PushEvent
from .models import AggregateStats, PaginatedResult, PaginationMeta
from .mutations import MutationResult
from .resources import CATALOG, FacetSpec, ResourceDefinition, StatsSpec, get_definition
from .state import ListingState, PageState, SortState
from .tracing import TraceContext
from .ui_errors import BrowserError, ErrorKind, to_browser_error, to_user_facing_error

__all__ = [
    "AggregateStats",
    "ApiError",
    "AsyncHttpClient",
    "BrowserError",
    "BulkExportFetcher",
    "CATALOG",
    "ClientConfig",
    "ConfigError",
    "ConfirmationRequiredError",
    "DEFAULT_EVENT_RULES",
    "ErrorKind",
    "EventRule",
    "ExportResult",
    "FacetSpec",
    "InvalidationBusAdapter",
    "ListingState",
    "LocalEventChannel",
    "MutationResult",
    "NotFoundError",
    "PageState",
    "PaginatedResult",
    "PaginationMeta",
    "PushEvent",
    "ResourceBrowser",
    "ResourceClient",
    "ResourceDefinition",
    "ResourceEndpoint",
    "SortState",
    "StateError",
    "StatsSpec",
    "TraceContext",
    "TransportError",
    "UnknownFacetError",
    "ValidationError",
    "get_definition",
    "load_config",
    "to_browser_error",
    "to_user_facing_error",
    "write_csv",
]
