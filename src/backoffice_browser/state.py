from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .exceptions import StateError, UnknownFacetError
from .resources import ResourceDefinition, SortDirection

RequestKey = tuple[tuple[tuple[str, str], ...], str, str, int, int]


@dataclass(frozen=True)
class SortState:
    field: str
    direction: SortDirection


@dataclass(frozen=True)
class PageState:
    page_number: int = 1
    page_size: int = 10


def _flip(direction: SortDirection) -> SortDirection:
    return "asc" if direction == "desc" else "desc"


class ListingState:
    """Facet, sort and page selections of one screen instance.

    Every setter validates against the resource declaration. Facet and sort
    changes (and page size changes) put the user back on page 1.
    """

    def __init__(
        self,
        definition: ResourceDefinition,
        filters: Mapping[str, str] | None = None,
        sort: SortState | None = None,
        page: PageState | None = None,
    ) -> None:
        self.definition = definition
        self.filters: dict[str, str] = {name: spec.default for name, spec in definition.facets.items()}
        for name, value in dict(filters or {}).items():
            self._check_facet(name, value)
            self.filters[name] = value
        if sort is None:
            sort = SortState(definition.default_sort, definition.default_direction)
        elif sort.field not in definition.sortable:
            raise StateError(f"{definition.name}: cannot sort by {sort.field!r}")
        self.sort: SortState = sort
        if page is None:
            page = PageState(1, definition.default_page_size)
        else:
            self._check_page(page)
        self.page: PageState = page

    def __repr__(self) -> str:
        return f"ListingState({self.definition.name!r}, filters={self.filters!r}, sort={self.sort!r}, page={self.page!r})"

    def set_filter(self, facet: str, value: str) -> bool:
        self._check_facet(facet, value)
        if self.filters[facet] == value:
            return False
        self.filters[facet] = value
        self._reset_page()
        return True

    def set_sort(self, field_name: str) -> bool:
        if field_name not in self.definition.sortable:
            raise StateError(f"{self.definition.name}: cannot sort by {field_name!r}")
        if self.sort.field == field_name:
            self.sort = SortState(field_name, _flip(self.sort.direction))
        else:
            self.sort = SortState(field_name, self.definition.default_direction)
        self._reset_page()
        return True

    def set_page(self, page_number: int) -> bool:
        candidate = PageState(page_number, self.page.page_size)
        self._check_page(candidate)
        if candidate == self.page:
            return False
        self.page = candidate
        return True

    def set_page_size(self, page_size: int) -> bool:
        candidate = PageState(1, page_size)
        self._check_page(candidate)
        if candidate == self.page:
            return False
        self.page = candidate
        return True

    def request_key(self) -> RequestKey:
        return (
            tuple(sorted(self.filters.items())),
            self.sort.field,
            self.sort.direction,
            self.page.page_number,
            self.page.page_size,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "filters": dict(self.filters),
            "sort": {"field": self.sort.field, "direction": self.sort.direction},
            "page": {"page_number": self.page.page_number, "page_size": self.page.page_size},
        }

    @classmethod
    def from_dict(cls, definition: ResourceDefinition, payload: Mapping[str, Any] | None) -> "ListingState":
        if not isinstance(payload, Mapping):
            return cls(definition)
        raw_sort = payload.get("sort")
        sort = None
        if isinstance(raw_sort, Mapping) and raw_sort.get("field"):
            direction = "desc" if str(raw_sort.get("direction", "asc")).lower() == "desc" else "asc"
            sort = SortState(str(raw_sort["field"]), direction)
        raw_page = payload.get("page")
        page = None
        if isinstance(raw_page, Mapping):
            try:
                page = PageState(
                    int(raw_page.get("page_number", 1)),
                    int(raw_page.get("page_size", definition.default_page_size)),
                )
            except (TypeError, ValueError) as exc:
                raise StateError(f"{definition.name}: unreadable page selection {dict(raw_page)!r}") from exc
        filters = payload.get("filters")
        return cls(
            definition,
            filters={str(k): str(v) for k, v in filters.items()} if isinstance(filters, Mapping) else {},
            sort=sort,
            page=page,
        )

    def _check_facet(self, facet: str, value: str) -> None:
        spec = self.definition.facets.get(facet)
        if spec is None:
            raise UnknownFacetError(self.definition.name, facet)
        if not isinstance(value, str):
            raise StateError(f"{self.definition.name}: facet {facet!r} expects text, got {type(value).__name__}")
        if not spec.accepts(value):
            raise StateError(f"{self.definition.name}: {value!r} is not a valid {facet!r} value")

    def _check_page(self, page: PageState) -> None:
        if not isinstance(page.page_number, int) or page.page_number < 1:
            raise StateError(f"Page number must be an integer >= 1, got {page.page_number!r}")
        if page.page_size not in self.definition.page_sizes:
            raise StateError(f"{self.definition.name}: page size {page.page_size} is not allowed")

    def _reset_page(self) -> None:
        if self.page.page_number != 1:
            self.page = PageState(1, self.page.page_size)
