from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Mapping

from .clients.resource_client import ResourceEndpoint
from .exceptions import ApiError
from .logger import get_logger, log_action
from .resources import ResourceDefinition
from .state import ListingState
from .synchronizer import RequestDescriptor
from .ui_errors import BrowserError, to_browser_error

logger = get_logger(__name__)

EMPTY_VALUE = "—"
SENSITIVE_KEYS = {"token", "refresh_token", "secret", "password", "access_token"}


@dataclass(frozen=True)
class ExportResult:
    rows: tuple[dict[str, Any], ...] = ()
    total: int = 0
    error: BrowserError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BulkExportFetcher:
    """One large-page fetch of what the user is looking at.

    Resources declaring ``export_scope="global"`` export the unfiltered set
    in their default order instead.
    """

    def __init__(
        self,
        definition: ResourceDefinition,
        endpoint: ResourceEndpoint,
        *,
        page_size: int = 1000,
        log: logging.Logger | None = None,
    ) -> None:
        self.definition = definition
        self.endpoint = endpoint
        self.page_size = page_size
        self.is_exporting = False
        self._logger = log or logger

    def build_params(self, state: ListingState) -> dict[str, Any]:
        if self.definition.export_scope == "global":
            return {
                "page": 1,
                "per_page": self.page_size,
                "sort_field": self.definition.server_sort_field(self.definition.default_sort),
                "sort_order": self.definition.default_direction,
            }
        return RequestDescriptor.capture(state, 0).to_params(
            self.definition, page_number=1, page_size=self.page_size
        )

    async def export_all(self, state: ListingState) -> ExportResult:
        params = self.build_params(state)
        self.is_exporting = True
        try:
            result = await self.endpoint.list(params)
        except ApiError as exc:
            log_action(self._logger, self.definition.name, "export", "error", trace_id=exc.trace_id, code=exc.code)
            return ExportResult(error=to_browser_error(exc))
        finally:
            self.is_exporting = False
        log_action(
            self._logger,
            self.definition.name,
            "export",
            "success",
            rows=len(result.rows),
            total=result.total,
            scope=self.definition.export_scope,
        )
        return ExportResult(rows=result.rows, total=result.total)


def normalize_value(value: Any) -> str:
    if value is None:
        return EMPTY_VALUE
    if isinstance(value, str):
        clean = value.strip()
        return clean or EMPTY_VALUE
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.astimezone().strftime("%Y-%m-%d %H:%M:%S %z")
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def sanitize_row(row: Mapping[str, Any], headers: Iterable[str]) -> dict[str, str]:
    sanitized: dict[str, str] = {}
    for header in headers:
        if any(token in header.lower() for token in SENSITIVE_KEYS):
            sanitized[header] = EMPTY_VALUE
            continue
        sanitized[header] = normalize_value(row.get(header))
    return sanitized


def write_csv(
    *,
    module: str,
    rows: Iterable[Mapping[str, Any]],
    headers: list[str],
    output_dir: str | Path = "exports",
    filters: Mapping[str, str] | None = None,
) -> Path:
    destination = Path(output_dir)
    destination.mkdir(parents=True, exist_ok=True)

    now = datetime.now().astimezone()
    path = destination / f"{module}_{now.strftime('%Y%m%d_%H%M%S')}.csv"

    with path.open("w", newline="", encoding="utf-8-sig") as handle:
        handle.write(f"# timestamp_local: {now.isoformat()}\n")
        handle.write(f"# module: {module}\n")
        handle.write(f"# filters: {dict(filters or {})}\n")
        writer = csv.DictWriter(handle, fieldnames=headers, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(sanitize_row(row, headers=headers))

    return path
