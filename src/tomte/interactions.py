"""Interaction registry and dispatcher for buttons, modals and select menus.

Addons declare handlers with :class:`InteractionHandler`; the host stamps
them with the owning module's priority and label and stores them here.
Handlers are tried in descending priority until one returns a truthy value::

    InteractionHandler("button", "confirm_", on_confirm, match="prefix")
"""

from __future__ import annotations

import inspect
import re
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from .logging import get_logger

logger = get_logger(__name__)

InteractionKind: TypeAlias = Literal[
    "button",
    "modal",
    "string_select",
    "user_select",
    "role_select",
    "mentionable_select",
    "channel_select",
]
MatchStrategy: TypeAlias = Literal["exact", "prefix", "regex"]
HandlerFn: TypeAlias = Callable[[Any, Any], Awaitable[bool] | bool]
KindResolver: TypeAlias = Callable[[Any], InteractionKind | None]
CustomIdResolver: TypeAlias = Callable[[Any], str | None]

INTERACTION_KINDS: tuple[InteractionKind, ...] = (
    "button",
    "modal",
    "string_select",
    "user_select",
    "role_select",
    "mentionable_select",
    "channel_select",
)
MATCH_STRATEGIES: tuple[MatchStrategy, ...] = ("exact", "prefix", "regex")


class InteractionConflict(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class InteractionHandler:
    """A handler as declared by an addon or command module."""

    kind: InteractionKind
    custom_id: str
    handler: HandlerFn
    match: MatchStrategy = "exact"


@dataclass(frozen=True, slots=True)
class InteractionRegistration:
    kind: InteractionKind
    pattern: str
    match: MatchStrategy
    handler: HandlerFn
    priority: int = 0
    source: str = "unknown"

    @classmethod
    def from_handler(
        cls, declared: InteractionHandler, *, priority: int, source: str
    ) -> InteractionRegistration:
        return cls(
            kind=declared.kind,
            pattern=declared.custom_id,
            match=declared.match,
            handler=declared.handler,
            priority=priority,
            source=source,
        )


def _check_registration(registration: InteractionRegistration) -> None:
    if registration.kind not in INTERACTION_KINDS:
        raise ValueError(f"Unknown interaction kind {registration.kind!r}")
    if registration.match not in MATCH_STRATEGIES:
        raise ValueError(f"Unknown match strategy {registration.match!r}")
    if not isinstance(registration.pattern, str) or not registration.pattern:
        raise ValueError("Interaction pattern must be a non-empty string")
    if not callable(registration.handler):
        raise TypeError(
            f"Handler for {registration.kind}:{registration.pattern} is not callable"
        )


def _default_kind(interaction: Any) -> InteractionKind | None:
    kind = getattr(interaction, "kind", None)
    return kind if kind in INTERACTION_KINDS else None


def _default_custom_id(interaction: Any) -> str | None:
    value = getattr(interaction, "custom_id", None)
    return value if isinstance(value, str) else None


class InteractionRegistry:
    def __init__(
        self,
        *,
        kind_resolver: KindResolver = _default_kind,
        custom_id_resolver: CustomIdResolver = _default_custom_id,
    ) -> None:
        self._handlers: dict[InteractionKind, list[InteractionRegistration]] = {
            kind: [] for kind in INTERACTION_KINDS
        }
        self._kind_resolver = kind_resolver
        self._custom_id_resolver = custom_id_resolver
        self._compiled: dict[str, re.Pattern[str] | None] = {}

    def get(
        self, pattern: str, kind: InteractionKind
    ) -> InteractionRegistration | None:
        for registration in self._handlers.get(kind, ()):
            if registration.match == "exact" and registration.pattern == pattern:
                return registration
        return None

    def has(self, pattern: str, kind: InteractionKind) -> bool:
        return self.get(pattern, kind) is not None

    def register(self, registration: InteractionRegistration) -> None:
        self.register_many([registration])

    def register_many(self, registrations: Iterable[InteractionRegistration]) -> None:
        """Insert a batch, or nothing at all if any exact entry collides."""
        batch = list(registrations)
        seen: dict[tuple[str, str], InteractionRegistration] = {}
        for registration in batch:
            _check_registration(registration)
            if registration.match != "exact":
                continue
            existing = self.get(registration.pattern, registration.kind)
            if existing is None:
                existing = seen.get((registration.kind, registration.pattern))
            if existing is not None:
                raise InteractionConflict(
                    f"Interaction conflict: {registration.kind}:{registration.pattern} "
                    f"already registered by {existing.source}"
                )
            seen[(registration.kind, registration.pattern)] = registration

        touched: set[InteractionKind] = set()
        for registration in batch:
            self._handlers[registration.kind].append(registration)
            touched.add(registration.kind)
            logger.debug(
                "interactions.registered",
                kind=registration.kind,
                match=registration.match,
                pattern=registration.pattern,
                priority=registration.priority,
                source=registration.source,
            )
        for kind in touched:
            self._handlers[kind].sort(key=lambda item: -item.priority)

    def unregister_source(self, source: str) -> int:
        removed = 0
        for kind, handlers in self._handlers.items():
            kept = [item for item in handlers if item.source != source]
            removed += len(handlers) - len(kept)
            self._handlers[kind] = kept
        if removed:
            logger.debug("interactions.unregistered", source=source, count=removed)
        return removed

    def clear(self) -> None:
        for handlers in self._handlers.values():
            handlers.clear()
        logger.debug("interactions.cleared")

    def all(self) -> dict[InteractionKind, list[InteractionRegistration]]:
        return {kind: list(handlers) for kind, handlers in self._handlers.items()}

    def count(self) -> int:
        return sum(len(handlers) for handlers in self._handlers.values())

    def candidates(
        self, kind: InteractionKind, custom_id: str
    ) -> list[InteractionRegistration]:
        return [
            registration
            for registration in self._handlers.get(kind, ())
            if self._matches(custom_id, registration)
        ]

    async def dispatch(self, interaction: Any, client: Any) -> bool:
        kind = self._kind_resolver(interaction)
        if kind is None:
            logger.warning(
                "interactions.unknown_kind",
                interaction_type=str(getattr(interaction, "type", None)),
            )
            return False

        custom_id = self._custom_id_resolver(interaction)
        if custom_id is None:
            logger.debug("interactions.missing_custom_id", kind=kind)
            return False

        for registration in self.candidates(kind, custom_id):
            logger.debug(
                "interactions.matched",
                kind=kind,
                custom_id=custom_id,
                match=registration.match,
                pattern=registration.pattern,
                source=registration.source,
            )
            try:
                handled = registration.handler(interaction, client)
                if inspect.isawaitable(handled):
                    handled = await handled
            except Exception as exc:
                logger.exception(
                    "interactions.handler_failed",
                    kind=kind,
                    custom_id=custom_id,
                    source=registration.source,
                    error=str(exc),
                    error_type=exc.__class__.__name__,
                )
                continue
            if handled:
                logger.debug(
                    "interactions.handled", custom_id=custom_id, source=registration.source
                )
                return True
            logger.debug(
                "interactions.declined", custom_id=custom_id, source=registration.source
            )

        logger.debug("interactions.unhandled", kind=kind, custom_id=custom_id)
        return False

    def _compile(self, pattern: str) -> re.Pattern[str] | None:
        if pattern in self._compiled:
            return self._compiled[pattern]
        try:
            compiled: re.Pattern[str] | None = re.compile(pattern)
        except re.error as exc:
            logger.error("interactions.invalid_regex", pattern=pattern, error=str(exc))
            compiled = None
        self._compiled[pattern] = compiled
        return compiled

    def _matches(self, custom_id: str, registration: InteractionRegistration) -> bool:
        match registration.match:
            case "exact":
                return custom_id == registration.pattern
            case "prefix":
                return custom_id.startswith(registration.pattern)
            case "regex":
                compiled = self._compile(registration.pattern)
                return compiled is not None and compiled.search(custom_id) is not None
        return False
