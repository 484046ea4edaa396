"""Push events from the server side-channel turned into cache invalidations.

Event flow:
1) A channel delivers named events (``order:created``, ``review:created``...).
2) ``InvalidationBusAdapter`` subscribes only to the events whose rule names
   the mounted resource, and re-checks the payload scope on delivery.
3) A relevant event becomes an ``InvalidationEffect`` (refetch the visible
   page, invalidate statistics, or both) handed to the owning controller.

Subscriptions live exactly as long as the mounted screen; ``detach`` must run
on unmount.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Protocol

from .logger import get_logger, log_action
from .resources import ResourceDefinition

logger = get_logger(__name__)


@dataclass(frozen=True)
class PushEvent:
    name: str
    payload: Mapping[str, Any] = field(default_factory=dict)


EventHandler = Callable[[PushEvent], Any]
Unsubscribe = Callable[[], None]


class EventChannel(Protocol):
    def subscribe(self, event_name: str, handler: EventHandler) -> Unsubscribe: ...


class LocalEventChannel:
    """In-process channel. A socket client feeds it through ``publish``."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    def subscribe(self, event_name: str, handler: EventHandler) -> Unsubscribe:
        self._handlers.setdefault(event_name, []).append(handler)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(event_name, [])
            if handler in handlers:
                handlers.remove(handler)
            if not handlers:
                self._handlers.pop(event_name, None)

        return _unsubscribe

    def subscriber_count(self, event_name: str | None = None) -> int:
        if event_name is not None:
            return len(self._handlers.get(event_name, ()))
        return sum(len(handlers) for handlers in self._handlers.values())

    async def publish(self, event_name: str, payload: Mapping[str, Any] | None = None) -> int:
        event = PushEvent(event_name, dict(payload or {}))
        handlers = list(self._handlers.get(event_name, ()))
        for handler in handlers:
            outcome = handler(event)
            if inspect.isawaitable(outcome):
                await outcome
        return len(handlers)


@dataclass(frozen=True)
class EventRule:
    """Static mapping of one event type to its effect.

    ``targets`` lists the resources the event concerns; empty means the
    resource is named in the payload under ``target_field``. ``scope_field``
    names the payload key that must equal the mounted scope.
    """

    targets: frozenset[str] = frozenset()
    refetch: bool = True
    invalidate_stats: bool = True
    scope_field: str | None = None
    target_field: str | None = None

    def may_concern(self, resource: str) -> bool:
        return not self.targets or resource in self.targets


@dataclass(frozen=True)
class InvalidationEffect:
    event: str
    refetch: bool
    invalidate_stats: bool


DEFAULT_EVENT_RULES: Mapping[str, EventRule] = MappingProxyType(
    {
        "order:created": EventRule(targets=frozenset({"orders"})),
        "order:status:updated": EventRule(targets=frozenset({"orders"})),
        "resource:created": EventRule(target_field="resource"),
        "resource:status:updated": EventRule(target_field="resource"),
        "review:created": EventRule(targets=frozenset({"reviews"}), scope_field="productSlug"),
        "review:reply:added": EventRule(
            targets=frozenset({"reviews"}), scope_field="productSlug", invalidate_stats=False
        ),
        "dashboard:refresh": EventRule(
            targets=frozenset({"orders", "products", "customers"}), refetch=False
        ),
    }
)

EffectHandler = Callable[[InvalidationEffect], Awaitable[None]]


class InvalidationBusAdapter:
    def __init__(
        self,
        definition: ResourceDefinition,
        channel: EventChannel,
        on_effect: EffectHandler,
        *,
        scope: str | None = None,
        rules: Mapping[str, EventRule] | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.definition = definition
        self.channel = channel
        self.scope = scope
        self.rules = rules if rules is not None else DEFAULT_EVENT_RULES
        self._on_effect = on_effect
        self._logger = log or logger
        self._unsubscribes: list[Unsubscribe] = []
        self._attached = False

    @property
    def is_attached(self) -> bool:
        return self._attached

    @property
    def subscribed_events(self) -> tuple[str, ...]:
        return tuple(name for name, rule in self.rules.items() if rule.may_concern(self.definition.name))

    def attach(self) -> None:
        if self._attached:
            return
        for event_name in self.subscribed_events:
            self._unsubscribes.append(self.channel.subscribe(event_name, self.handle))
        self._attached = True

    def detach(self) -> None:
        while self._unsubscribes:
            self._unsubscribes.pop()()
        self._attached = False

    def resolve(self, event: PushEvent) -> InvalidationEffect | None:
        rule = self.rules.get(event.name)
        if rule is None or not rule.may_concern(self.definition.name):
            return None
        if rule.target_field and event.payload.get(rule.target_field) != self.definition.name:
            return None
        if rule.scope_field:
            value = event.payload.get(rule.scope_field)
            if self.scope is None or value is None or str(value) != self.scope:
                return None
        return InvalidationEffect(event.name, refetch=rule.refetch, invalidate_stats=rule.invalidate_stats)

    async def handle(self, event: PushEvent) -> InvalidationEffect | None:
        # a late delivery after detach must not reach a torn-down screen
        if not self._attached:
            return None
        effect = self.resolve(event)
        if effect is None:
            self._logger.debug("ignoring %s for %s scope=%s", event.name, self.definition.name, self.scope)
            return None
        log_action(
            self._logger,
            self.definition.name,
            "invalidation",
            "success",
            event=event.name,
            refetch=effect.refetch,
            invalidate_stats=effect.invalidate_stats,
        )
        await self._on_effect(effect)
        return effect
