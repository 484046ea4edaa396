from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field


class PaginationMeta(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    current_page: int = 1
    per_page: int = 10
    total: int = 0
    last_page: int = 1
    from_: int | None = Field(default=None, alias="from")
    to: int | None = None


class PaginatedResult(BaseModel):
    """One server page. Replaced wholesale, never patched."""

    model_config = ConfigDict(frozen=True)

    rows: tuple[dict[str, Any], ...] = ()
    pagination: PaginationMeta = Field(default_factory=PaginationMeta)

    @property
    def total(self) -> int:
        return self.pagination.total

    @property
    def last_page(self) -> int:
        return self.pagination.last_page

    @property
    def range_start(self) -> int | None:
        return self.pagination.from_

    @property
    def range_end(self) -> int | None:
        return self.pagination.to

    @classmethod
    def empty(cls) -> "PaginatedResult":
        return cls()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | list[Any] | None, per_page: int) -> "PaginatedResult":
        """Accept ``{rows, pagination}`` or the backend's ``{data, meta}`` envelope."""
        if isinstance(payload, list):
            raw_rows: Any = payload
            raw_meta: Any = None
        elif isinstance(payload, Mapping):
            raw_rows = payload.get("rows", payload.get("data", []))
            raw_meta = payload.get("pagination", payload.get("meta"))
        else:
            raw_rows, raw_meta = [], None
        rows = tuple(dict(row) for row in raw_rows or () if isinstance(row, Mapping))

        if not isinstance(raw_meta, Mapping):
            count = len(rows)
            raw_meta = {
                "current_page": 1,
                "per_page": per_page,
                "total": count,
                "last_page": 1,
                "from": 1 if count else None,
                "to": count if count else None,
            }
        meta = dict(raw_meta)
        if meta.get("last_page") is None:
            total = int(meta.get("total") or 0)
            size = int(meta.get("per_page") or per_page) or per_page
            meta["last_page"] = max(1, math.ceil(total / size))
        return cls(rows=rows, pagination=PaginationMeta.model_validate(meta))


class AggregateStats(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    total: int = 0
    status_counts: dict[str, int] = Field(default_factory=dict)
    sums: dict[str, float] = Field(default_factory=dict)
    averages: dict[str, float] = Field(default_factory=dict)


class MutationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class PendingMutation:
    kind: MutationKind
    target_id: str | int | None
    payload: Mapping[str, Any] = field(default_factory=dict)
    dedupe_key: str | None = None

    @property
    def operation(self) -> str:
        key = self.dedupe_key if self.dedupe_key is not None else self.target_id
        return f"{self.kind.value}:{key}"
