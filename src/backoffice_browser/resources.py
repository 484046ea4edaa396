"""Static declarations of every resource-list screen.

A ``ResourceDefinition`` says which facets a screen filters by, which columns
it may sort on (and what the server calls them), which page sizes it offers,
how its aggregate statistics are derived and what its export covers. The
controller never infers any of this from the data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal, Mapping

ALL = "all"

FacetKind = Literal["text", "choice"]
SortDirection = Literal["asc", "desc"]
ExportScope = Literal["filtered", "global"]


@dataclass(frozen=True)
class FacetSpec:
    kind: FacetKind = "choice"
    choices: tuple[str, ...] | None = None
    param: str | None = None
    value_map: Mapping[str, str] = field(default_factory=dict)

    @property
    def default(self) -> str:
        return "" if self.kind == "text" else ALL

    def accepts(self, value: str) -> bool:
        if self.kind == "text":
            return True
        if value == ALL or self.choices is None:
            return True
        return value in self.choices

    def server_value(self, value: str) -> str | None:
        """Query parameter value, or ``None`` when the facet is unconstrained."""
        if self.kind == "text":
            clean = value.strip()
            return clean or None
        if value in (ALL, ""):
            return None
        return self.value_map.get(value, value)


@dataclass(frozen=True)
class StatsSpec:
    status_field: str | None = "status"
    statuses: tuple[str, ...] = ()
    sum_fields: tuple[str, ...] = ()
    server_path: str | None = None


@dataclass(frozen=True, eq=False)
class ResourceDefinition:
    name: str
    list_path: str
    facets: Mapping[str, FacetSpec]
    sortable: tuple[str, ...]
    default_sort: str
    default_direction: SortDirection = "desc"
    sort_aliases: Mapping[str, str] = field(default_factory=dict)
    page_sizes: tuple[int, ...] = (5, 10, 20, 50)
    default_page_size: int = 10
    item_path: str | None = None
    stats: StatsSpec = field(default_factory=StatsSpec)
    export_scope: ExportScope = "filtered"
    stats_affected_by_mutations: bool = True

    def __post_init__(self) -> None:
        if self.default_sort not in self.sortable:
            raise ValueError(f"{self.name}: default sort {self.default_sort!r} is not sortable")
        if self.default_page_size not in self.page_sizes:
            raise ValueError(f"{self.name}: default page size {self.default_page_size} is not allowed")
        object.__setattr__(self, "facets", MappingProxyType(dict(self.facets)))
        object.__setattr__(self, "sort_aliases", MappingProxyType(dict(self.sort_aliases)))

    def server_sort_field(self, field_name: str) -> str:
        return self.sort_aliases.get(field_name, field_name)

    def facet_param(self, facet: str) -> str:
        spec = self.facets[facet]
        return spec.param or facet

    def resolved_list_path(self, scope: str | None = None) -> str:
        return _format_scope(self.list_path, scope)

    def resolved_item_path(self, identity: str | int, scope: str | None = None) -> str:
        template = self.item_path or self.list_path.rstrip("/") + "/{id}"
        return _format_scope(template, scope).replace("{id}", str(identity))

    def resolved_stats_path(self, scope: str | None = None) -> str | None:
        if self.stats.server_path is None:
            return None
        return _format_scope(self.stats.server_path, scope)


def _format_scope(template: str, scope: str | None) -> str:
    if "{scope}" not in template:
        return template
    if not scope:
        raise ValueError(f"Path {template!r} needs a scope identifier")
    return template.replace("{scope}", scope)


SEARCH = FacetSpec(kind="text")

PRODUCTS = ResourceDefinition(
    name="products",
    list_path="/products",
    facets={
        "search": SEARCH,
        "status": FacetSpec(choices=("available", "low_stock", "out_of_stock", "discontinued")),
        "category": FacetSpec(),
        "brand": FacetSpec(),
    },
    sortable=("id", "name", "price", "stock", "created_at", "updated_at"),
    default_sort="created_at",
    default_direction="desc",
    stats=StatsSpec(
        status_field="status",
        statuses=("available", "low_stock", "out_of_stock", "discontinued"),
        sum_fields=("stock",),
    ),
)

BRANDS = ResourceDefinition(
    name="brands",
    list_path="/brands",
    facets={"search": SEARCH},
    sortable=("id", "name", "productCount", "created_at"),
    sort_aliases={"productCount": "product_count"},
    default_sort="name",
    default_direction="asc",
    stats=StatsSpec(status_field="status", statuses=("active", "inactive"), sum_fields=("productCount",)),
    export_scope="global",
)

CATEGORIES = ResourceDefinition(
    name="categories",
    list_path="/categories",
    facets={"search": SEARCH},
    sortable=("id", "name", "productCount", "created_at"),
    sort_aliases={"productCount": "product_count"},
    default_sort="name",
    default_direction="asc",
    stats=StatsSpec(status_field="status", statuses=("active", "inactive"), sum_fields=("productCount",)),
    export_scope="global",
)

ORDERS = ResourceDefinition(
    name="orders",
    list_path="/admin/orders",
    facets={
        "search": SEARCH,
        "status": FacetSpec(
            choices=("pending", "shipping", "delivered", "cancelled"),
            value_map={"shipping": "shipped"},
        ),
    },
    sortable=("id", "customer", "date", "status", "total"),
    sort_aliases={"date": "created_at", "customer": "user.name"},
    default_sort="date",
    default_direction="desc",
    stats=StatsSpec(
        status_field="status",
        statuses=("pending", "shipped", "delivered", "cancelled"),
        sum_fields=("total",),
    ),
)

CUSTOMERS = ResourceDefinition(
    name="customers",
    list_path="/admin/customers",
    facets={"search": SEARCH, "status": FacetSpec(choices=("active", "blocked"))},
    sortable=("id", "name", "email", "joinedDate", "totalOrders", "totalSpent"),
    sort_aliases={"joinedDate": "created_at", "totalOrders": "orders_count", "totalSpent": "total_spent"},
    default_sort="joinedDate",
    default_direction="desc",
    stats=StatsSpec(status_field="status", statuses=("active", "blocked"), sum_fields=("totalSpent",)),
)

PROMOTIONS = ResourceDefinition(
    name="promotions",
    list_path="/admin/promotions",
    facets={
        "search": SEARCH,
        "status": FacetSpec(choices=("active", "inactive", "expired", "scheduled")),
        "type": FacetSpec(choices=("percentage", "fixed")),
    },
    sortable=("id", "code", "value", "usageCount", "startDate", "endDate"),
    sort_aliases={"usageCount": "usage_count", "startDate": "start_date", "endDate": "end_date"},
    default_sort="startDate",
    default_direction="desc",
    stats=StatsSpec(
        status_field="status",
        statuses=("active", "inactive", "expired", "scheduled"),
        sum_fields=("usageCount",),
    ),
)

SUPPORT_TICKETS = ResourceDefinition(
    name="support_tickets",
    list_path="/admin/contacts",
    facets={"search": SEARCH, "status": FacetSpec(choices=("new", "read", "replied"))},
    sortable=("id", "name", "subject", "created_at"),
    default_sort="created_at",
    default_direction="desc",
    stats=StatsSpec(status_field="status", statuses=("new", "read", "replied")),
)

REVIEWS = ResourceDefinition(
    name="reviews",
    list_path="/products/{scope}/reviews",
    item_path="/products/{scope}/reviews/{id}",
    facets={"rating": FacetSpec(choices=("1", "2", "3", "4", "5"))},
    sortable=("created_at", "rating"),
    default_sort="created_at",
    default_direction="desc",
    stats=StatsSpec(status_field="rating", statuses=("1", "2", "3", "4", "5"), sum_fields=("rating",)),
)

CATALOG: Mapping[str, ResourceDefinition] = MappingProxyType(
    {
        definition.name: definition
        for definition in (
            PRODUCTS,
            BRANDS,
            CATEGORIES,
            ORDERS,
            CUSTOMERS,
            PROMOTIONS,
            SUPPORT_TICKETS,
            REVIEWS,
        )
    }
)


def get_definition(name: str) -> ResourceDefinition:
    try:
        return CATALOG[name]
    except KeyError:
        raise KeyError(f"Unknown resource: {name}") from None
