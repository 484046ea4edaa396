from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping

from .clients.resource_client import ResourceEndpoint
from .exceptions import ApiError, ConfirmationRequiredError
from .idempotency import new_idempotency_key
from .logger import get_logger, log_action
from .models import MutationKind, PendingMutation
from .resources import ResourceDefinition
from .ui_errors import BrowserError, duplicate_mutation_error, to_browser_error

logger = get_logger(__name__)

SuccessHook = Callable[[PendingMutation], Awaitable[None]]


@dataclass(frozen=True)
class MutationResult:
    mutation: PendingMutation
    resource: dict[str, Any] | None = None
    error: BrowserError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _payload_key(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, sort_keys=True, default=str)


class MutationCoordinator:
    """Runs create/update/delete and re-synchronizes on success.

    Nothing is inserted into or removed from the visible page here; the
    caller sees the change only through the re-fetch triggered by
    ``on_success``.
    """

    def __init__(
        self,
        definition: ResourceDefinition,
        endpoint: ResourceEndpoint,
        *,
        on_success: SuccessHook,
        on_change: Callable[[], None] | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.definition = definition
        self.endpoint = endpoint
        self._on_success = on_success
        self._on_change = on_change
        self._logger = log or logger
        self._in_flight: dict[str, PendingMutation] = {}
        self._attempt_keys: dict[str, str] = {}

    @property
    def pending(self) -> tuple[PendingMutation, ...]:
        return tuple(self._in_flight.values())

    def is_pending(self, operation: str) -> bool:
        return operation in self._in_flight

    async def create(self, payload: Mapping[str, Any], *, dedupe_key: str | None = None) -> MutationResult:
        mutation = PendingMutation(
            kind=MutationKind.CREATE,
            target_id=None,
            payload=dict(payload),
            dedupe_key=dedupe_key or _payload_key(payload),
        )
        idempotency_key = self._attempt_key(mutation.operation)
        return await self._execute(
            mutation,
            lambda: self.endpoint.create(mutation.payload, idempotency_key=idempotency_key),
        )

    async def update(self, identity: str | int, payload: Mapping[str, Any]) -> MutationResult:
        # identity is the key the row was loaded with, never a field from payload
        mutation = PendingMutation(kind=MutationKind.UPDATE, target_id=identity, payload=dict(payload))
        return await self._execute(mutation, lambda: self.endpoint.update(identity, mutation.payload))

    async def delete(self, identity: str | int, *, confirmed: bool = False) -> MutationResult:
        if not confirmed:
            raise ConfirmationRequiredError(f"Deleting {self.definition.name} {identity!r} needs confirmation")
        mutation = PendingMutation(kind=MutationKind.DELETE, target_id=identity)

        async def _delete() -> None:
            await self.endpoint.delete(identity)

        return await self._execute(mutation, _delete)

    async def _execute(self, mutation: PendingMutation, call: Callable[[], Awaitable[Any]]) -> MutationResult:
        operation = mutation.operation
        if not self._begin(mutation):
            log_action(self._logger, self.definition.name, mutation.kind.value, "duplicate", target=mutation.target_id)
            return MutationResult(mutation, error=duplicate_mutation_error(f"{self.definition.name} {mutation.kind.value}"))
        try:
            resource = await call()
        except ApiError as exc:
            error = to_browser_error(exc)
            log_action(
                self._logger,
                self.definition.name,
                mutation.kind.value,
                "error",
                trace_id=exc.trace_id,
                target=mutation.target_id,
                kind=error.kind.value,
            )
            return MutationResult(mutation, error=error)
        finally:
            self._end(operation)

        self._attempt_keys.pop(operation, None)
        log_action(self._logger, self.definition.name, mutation.kind.value, "success", target=mutation.target_id)
        await self._on_success(mutation)
        return MutationResult(mutation, resource=resource if isinstance(resource, dict) else None)

    def _attempt_key(self, operation: str) -> str:
        """Reuse one Idempotency-Key across manual retries of the same create."""
        cached = self._attempt_keys.get(operation)
        if cached:
            return cached
        key = new_idempotency_key()
        self._attempt_keys[operation] = key
        return key

    def _begin(self, mutation: PendingMutation) -> bool:
        if mutation.operation in self._in_flight:
            return False
        self._in_flight[mutation.operation] = mutation
        self._notify()
        return True

    def _end(self, operation: str) -> None:
        self._in_flight.pop(operation, None)
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()
