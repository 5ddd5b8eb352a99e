"""Namespaced event bus addons use to talk to each other.

Events are keyed ``namespace:event``; both parts are plain identifiers::

    await host.bus.emit("tickets", "created", {"ticket_id": 12})
    host.bus.on("tickets", "created", on_ticket_created)

Listeners take the event data and may be sync or async. A failing listener is
logged and does not stop delivery to the others.
"""

from __future__ import annotations

import inspect
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeAlias

import anyio

from .logging import current_addon, get_logger

logger = get_logger(__name__)

Listener: TypeAlias = Callable[[Any], Awaitable[None] | None]

_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class BusError(ValueError):
    pass


def event_key(namespace: str, event: str) -> str:
    for label, part in (("namespace", namespace), ("event", event)):
        if not isinstance(part, str) or not part:
            raise BusError(f"{label} must be a non-empty string")
        if not _NAME_RE.match(part):
            raise BusError(
                f"{label} can only contain letters, numbers, underscores and hyphens: {part}"
            )
    return f"{namespace}:{event}"


@dataclass(frozen=True, slots=True)
class Subscription:
    listener: Listener
    once: bool = False
    source: str | None = None


@dataclass(frozen=True, slots=True)
class EventStats:
    listeners: int
    emissions: int


@dataclass(frozen=True, slots=True)
class BusStats:
    events: int
    emissions: int
    listeners: dict[str, int] = field(default_factory=dict)


class AddonBus:
    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}
        self._emissions: dict[str, int] = {}

    def on(
        self,
        namespace: str,
        event: str,
        listener: Listener,
        *,
        once: bool = False,
        source: str | None = None,
    ) -> Subscription:
        if not callable(listener):
            raise TypeError(f"Listener for {namespace}:{event} is not callable")
        key = event_key(namespace, event)
        subscription = Subscription(
            listener=listener, once=once, source=source or current_addon()
        )
        self._subscriptions.setdefault(key, []).append(subscription)
        logger.debug("bus.listener_added", event=key, once=once, source=subscription.source)
        return subscription

    def once(
        self, namespace: str, event: str, listener: Listener, *, source: str | None = None
    ) -> Subscription:
        return self.on(namespace, event, listener, once=True, source=source)

    def off(self, namespace: str, event: str, listener: Listener) -> bool:
        key = event_key(namespace, event)
        subscriptions = self._subscriptions.get(key, [])
        for index, subscription in enumerate(subscriptions):
            if subscription.listener is listener:
                del subscriptions[index]
                self._prune(key)
                logger.debug("bus.listener_removed", event=key)
                return True
        return False

    async def emit(self, namespace: str, event: str, data: Any = None) -> int:
        """Deliver ``data`` to every listener; returns how many were called."""
        key = event_key(namespace, event)
        self._emissions[key] = self._emissions.get(key, 0) + 1

        subscriptions = list(self._subscriptions.get(key, []))
        if not subscriptions:
            logger.debug("bus.no_listeners", event=key)
            return 0

        # once-listeners are dropped before delivery so re-entrant emits skip them
        remaining = [s for s in self._subscriptions[key] if not s.once]
        self._subscriptions[key] = remaining
        self._prune(key)

        logger.debug("bus.emit", event=key, listeners=len(subscriptions), has_data=data is not None)
        async with anyio.create_task_group() as tg:
            for subscription in subscriptions:
                tg.start_soon(self._deliver, key, subscription, data)
        return len(subscriptions)

    async def _deliver(self, key: str, subscription: Subscription, data: Any) -> None:
        try:
            outcome = subscription.listener(data)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            logger.error(
                "bus.listener_failed",
                event=key,
                source=subscription.source,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )

    def _prune(self, key: str) -> None:
        if not self._subscriptions.get(key):
            self._subscriptions.pop(key, None)

    def remove_all(self, namespace: str | None = None, event: str | None = None) -> int:
        if namespace is not None and event is not None:
            keys = [event_key(namespace, event)]
        elif namespace is not None:
            keys = [k for k in self._subscriptions if k.startswith(f"{namespace}:")]
        else:
            keys = list(self._subscriptions)
        return sum(len(self._subscriptions.pop(key, [])) for key in keys)

    def remove_source(self, source: str) -> int:
        removed = 0
        for key in list(self._subscriptions):
            kept = [s for s in self._subscriptions[key] if s.source != source]
            removed += len(self._subscriptions[key]) - len(kept)
            self._subscriptions[key] = kept
            self._prune(key)
        return removed

    def event_names(self) -> list[str]:
        return sorted(self._subscriptions)

    def events_of(self, namespace: str) -> list[str]:
        prefix = f"{namespace}:"
        return [key[len(prefix) :] for key in self.event_names() if key.startswith(prefix)]

    def namespaces(self) -> list[str]:
        return sorted({key.split(":", 1)[0] for key in self._subscriptions})

    def listener_count(self, namespace: str, event: str) -> int:
        return len(self._subscriptions.get(event_key(namespace, event), []))

    def event_stats(self, namespace: str, event: str) -> EventStats:
        key = event_key(namespace, event)
        return EventStats(
            listeners=len(self._subscriptions.get(key, [])),
            emissions=self._emissions.get(key, 0),
        )

    def stats(self) -> BusStats:
        keys = sorted({*self._subscriptions, *self._emissions})
        return BusStats(
            events=len(keys),
            emissions=sum(self._emissions.values()),
            listeners={key: len(self._subscriptions.get(key, [])) for key in keys},
        )

    def clear_stats(self) -> None:
        self._emissions.clear()
