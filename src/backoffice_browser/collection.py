from __future__ import annotations

from typing import Any

from .models import PaginatedResult, PaginationMeta


class PaginatedCollectionCache:
    """Holds the page currently on screen. Every write is a full replace."""

    def __init__(self) -> None:
        self._result = PaginatedResult.empty()
        self._sequence = 0

    @property
    def result(self) -> PaginatedResult:
        return self._result

    @property
    def rows(self) -> tuple[dict[str, Any], ...]:
        return self._result.rows

    @property
    def pagination(self) -> PaginationMeta:
        return self._result.pagination

    @property
    def sequence(self) -> int:
        """Sequence number of the descriptor whose response is shown."""
        return self._sequence

    def replace(self, result: PaginatedResult, sequence: int) -> None:
        self._result = result
        self._sequence = sequence

    def clear(self) -> None:
        self._result = PaginatedResult.empty()
        self._sequence = 0
