"""The host context: owns every registry a running bot shares with its addons."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any, Protocol

from .bus import AddonBus
from .commands import CommandTable
from .discovery import DiscoveredModule, DiscoveryReport, ModuleKind, discover_all
from .exports import AddonExports
from .intents import IntentCollector, load_intent_configs
from .interactions import InteractionRegistry
from .loader import LoadResult, load_module_timed, load_tiered
from .logging import get_logger
from .plugins import forget_package
from .registration import load_addon, load_command
from .settings import DEFAULT_LOAD_TIMEOUT
from .summary import LoadSummary

logger = get_logger(__name__)


class Database(Protocol):
    async def execute(self, sql: str, *params: Any) -> Any: ...

    async def query(self, sql: str, *params: Any) -> list[Any]: ...


@dataclass(slots=True)
class OfflineClient:
    """Passed to addons when loading without a gateway connection."""

    host: HostContext
    user: Any = None

    @property
    def bus(self) -> AddonBus:
        return self.host.bus

    @property
    def exports(self) -> AddonExports:
        return self.host.exports

    @property
    def database(self) -> Database | None:
        return self.host.database

    def get_guild(self, guild_id: int) -> Any:
        return None

    def get_channel(self, channel_id: int) -> Any:
        return None


@dataclass(slots=True)
class HostContext:
    root: Path
    client: Any = None
    database: Database | None = None
    timeout: float = DEFAULT_LOAD_TIMEOUT
    enabled: bool = True
    registry: InteractionRegistry = field(default_factory=InteractionRegistry)
    commands: CommandTable = field(default_factory=CommandTable)
    intents: IntentCollector = field(default_factory=IntentCollector)
    summary: LoadSummary = field(default_factory=LoadSummary)
    bus: AddonBus = field(default_factory=AddonBus)
    exports: AddonExports = field(default_factory=AddonExports)
    _discovery: DiscoveryReport | None = None

    def discover(self, *, refresh: bool = False) -> DiscoveryReport:
        if self._discovery is None or refresh:
            if not self.enabled:
                logger.debug("host.addons_disabled")
                self._discovery = DiscoveryReport()
            else:
                self._discovery = discover_all(self.root)
                logger.debug(
                    "host.discovered",
                    root=str(self.root),
                    commands=len(self._discovery.of("command")),
                    addons=len(self._discovery.of("addon")),
                    rejected=len(self._discovery.rejected),
                )
        return self._discovery

    def _loader(self, kind: ModuleKind):
        match kind:
            case "command":
                return partial(load_command, self)
            case "addon":
                return partial(load_addon, self)
        raise ValueError(f"Unknown module kind {kind!r}")

    async def _load_kind(self, kind: ModuleKind) -> list[LoadResult]:
        modules = self.discover().of(kind)
        if not modules:
            logger.debug("host.nothing_to_load", kind=kind)
            self.summary.store(kind, [], 0)
            return []

        started = time.perf_counter()
        results = await load_tiered(modules, self._loader(kind), timeout=self.timeout)
        elapsed_ms = round((time.perf_counter() - started) * 1000)
        self.summary.store(kind, results, elapsed_ms)
        return results

    async def load_commands(self) -> list[LoadResult]:
        return await self._load_kind("command")

    async def load_addons(self) -> list[LoadResult]:
        return await self._load_kind("addon")

    async def load_intents(self) -> tuple[int, int]:
        report = self.discover()
        return await load_intent_configs(
            self, [*report.of("command"), *report.of("addon")]
        )

    async def load_all(self) -> list[LoadResult]:
        return [*await self.load_commands(), *await self.load_addons()]

    def report(self) -> None:
        self.summary.report()

    def unload(self, module: DiscoveredModule) -> tuple[list[str], int]:
        """Drop everything ``module`` registered; returns (commands, handlers)."""
        names = self.commands.remove_source(module.display_name)
        handlers = self.registry.unregister_source(module.display_name)
        listeners = self.bus.remove_source(module.display_name)
        exported = self.exports.remove_source(module.display_name)
        forget_package(module.dir_path)
        logger.info(
            "host.unloaded",
            module=module.display_name,
            kind=module.kind,
            commands=len(names),
            interactions=handlers,
            listeners=listeners,
            exports=exported,
        )
        return names, handlers

    async def reload(self, module: DiscoveredModule) -> LoadResult:
        self.unload(module)
        return await load_module_timed(
            module, self._loader(module.kind), timeout=self.timeout
        )

    def find(self, name: str, kind: ModuleKind | None = None) -> DiscoveredModule | None:
        report = self.discover()
        kinds: tuple[ModuleKind, ...] = (kind,) if kind else ("command", "addon")
        for each in kinds:
            for module in report.of(each):
                if name in (module.display_name, module.label, module.dir_name):
                    return module
        return None
