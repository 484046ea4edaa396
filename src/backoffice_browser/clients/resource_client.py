from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

from ..exceptions import invalid_response
from ..idempotency import idempotency_headers
from ..models import AggregateStats, PaginatedResult
from ..resources import ResourceDefinition
from .base import BaseClient


class ResourceEndpoint(Protocol):
    """What the browser needs from a resource's HTTP surface."""

    async def list(self, params: Mapping[str, Any]) -> PaginatedResult: ...

    async def create(
        self, payload: Mapping[str, Any], idempotency_key: str | None = None
    ) -> dict[str, Any]: ...

    async def update(self, identity: str | int, payload: Mapping[str, Any]) -> dict[str, Any]: ...

    async def delete(self, identity: str | int) -> None: ...

    async def stats(self) -> AggregateStats: ...


@dataclass
class ResourceClient(BaseClient):
    definition: ResourceDefinition = field(kw_only=True)
    scope: str | None = field(default=None, kw_only=True)

    @property
    def module(self) -> str:
        return self.definition.name

    async def list(self, params: Mapping[str, Any]) -> PaginatedResult:
        payload = await self._request(
            "GET",
            self.definition.resolved_list_path(self.scope),
            params=dict(params),
            module=self.module,
            operation="list",
        )
        per_page = int(params.get("per_page") or self.definition.default_page_size)
        try:
            return PaginatedResult.from_payload(payload, per_page=per_page)
        except (TypeError, ValueError) as exc:
            raise invalid_response(f"{self.module} list returned an unreadable page: {exc}") from exc

    async def create(self, payload: Mapping[str, Any], idempotency_key: str | None = None) -> dict[str, Any]:
        data = await self._request(
            "POST",
            self.definition.resolved_list_path(self.scope),
            json_body=dict(payload),
            headers=idempotency_headers(idempotency_key),
            module=self.module,
            operation="create",
        )
        return _entity(data)

    async def update(self, identity: str | int, payload: Mapping[str, Any]) -> dict[str, Any]:
        data = await self._request(
            "PUT",
            self.definition.resolved_item_path(identity, self.scope),
            json_body=dict(payload),
            module=self.module,
            operation="update",
        )
        return _entity(data)

    async def delete(self, identity: str | int) -> None:
        await self._request(
            "DELETE",
            self.definition.resolved_item_path(identity, self.scope),
            module=self.module,
            operation="delete",
        )

    async def stats(self) -> AggregateStats:
        path = self.definition.resolved_stats_path(self.scope)
        if path is None:
            raise ValueError(f"{self.definition.name} declares no statistics endpoint")
        data = await self._request("GET", path, module=self.module, operation="stats")
        try:
            return AggregateStats.model_validate(_entity(data))
        except ValueError as exc:
            raise invalid_response(f"{self.module} stats returned unreadable totals: {exc}") from exc


def _entity(data: Any) -> dict[str, Any]:
    if isinstance(data, Mapping):
        inner = data.get("data")
        if isinstance(inner, Mapping):
            return dict(inner)
        return dict(data)
    return {}
