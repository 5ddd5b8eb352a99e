"""Gateway intent requests collected from addons before the client connects.

An addon asks for intents with an ``intentconfig`` file::

    # addons/MyAddon/intents.py
    INTENTS = ["members", "voice_states"]

Names are ``discord.Intents`` flag names. Requests made after the client has
been created cannot take effect; the collector is locked at that point and
late requests are logged and dropped.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import anyio
import discord

from .discovery import DiscoveredModule
from .logging import get_logger, is_debug
from .plugins import PluginLoadFailed, import_entry, validate_intents

if TYPE_CHECKING:
    from .host import HostContext

logger = get_logger(__name__)

DEFAULT_INTENTS: tuple[str, ...] = ("guilds", "guild_messages", "message_content")


def known_intent(name: str) -> bool:
    return name in discord.Intents.VALID_FLAGS


@dataclass(slots=True)
class IntentCollector:
    _sources: dict[str, set[str]] = field(default_factory=dict)
    _locked: bool = False

    @property
    def locked(self) -> bool:
        return self._locked

    def request(self, name: str, source: str = "unknown") -> bool:
        if self._locked:
            logger.warning(
                "intents.late_request",
                intent=name,
                source=source,
                hint="request intents from an intentconfig file",
            )
            return False
        if not known_intent(name):
            logger.warning("intents.unknown", intent=name, source=source)
            return False
        self._sources.setdefault(name, set()).add(source)
        logger.debug("intents.requested", intent=name, source=source)
        return True

    def request_many(self, names: Iterable[str], source: str = "unknown") -> int:
        return sum(1 for name in names if self.request(name, source))

    def lock(self) -> None:
        self._locked = True
        logger.debug("intents.locked")

    def requested(self) -> list[str]:
        return sorted(self._sources)

    def sources(self, name: str) -> list[str]:
        return sorted(self._sources.get(name, ()))

    def summary(self) -> dict[str, list[str]]:
        return {name: self.sources(name) for name in self.requested()}

    def clear(self) -> None:
        self._sources.clear()
        self._locked = False


def build_intents(collector: IntentCollector) -> discord.Intents:
    names = sorted({*DEFAULT_INTENTS, *collector.requested()})
    intents = discord.Intents.none()
    for name in names:
        setattr(intents, name, True)

    logger.debug("intents.build", count=len(names), intents=names)
    if is_debug():
        for name, sources in collector.summary().items():
            logger.debug("intents.sources", intent=name, sources=sources)
    return intents


def intent_config_path(module: DiscoveredModule) -> Path | None:
    relative = module.descriptor.intentconfig
    if not relative:
        return None
    return (module.dir_path / relative).absolute()


async def _load_one(collector: IntentCollector, module: DiscoveredModule, path: Path) -> int:
    if not path.is_file():
        raise PluginLoadFailed(f"Intent config not found: {path.name}")
    imported = await anyio.to_thread.run_sync(import_entry, path, abandon_on_cancel=True)
    return collector.request_many(validate_intents(imported), module.display_name)


async def load_intent_configs(
    host: HostContext, modules: Sequence[DiscoveredModule]
) -> tuple[int, int]:
    """Import every ``intentconfig`` file once; returns (loaded, failed)."""
    pending: dict[Path, DiscoveredModule] = {}
    for module in modules:
        path = intent_config_path(module)
        if path is not None:
            pending.setdefault(path, module)
    if not pending:
        logger.debug("intents.none_configured")
        return 0, 0

    loaded = 0
    failed = 0
    requested = 0

    async def run(path: Path, module: DiscoveredModule) -> None:
        nonlocal loaded, failed, requested
        try:
            with anyio.fail_after(host.timeout):
                count = await _load_one(host.intents, module, path)
        except Exception as exc:
            failed += 1
            logger.error(
                "intents.config_failed",
                module=module.display_name,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            return
        loaded += 1
        requested += count

    async with anyio.create_task_group() as tg:
        for path, module in pending.items():
            tg.start_soon(run, path, module)

    if loaded:
        logger.info("intents.configs_loaded", ok=True, count=loaded, requested=requested)
    if failed:
        logger.warning("intents.configs_failed", count=failed)
    return loaded, failed
