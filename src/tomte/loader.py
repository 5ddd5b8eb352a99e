"""Priority-tiered module loading with a per-module timeout.

Tiers run strictly in descending priority: every module of a tier settles
(success, failure or timeout) before the next tier starts. Modules inside a
tier load concurrently. Nothing raised by module code escapes this module.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, replace
from typing import TypeAlias

import anyio

from .discovery import DiscoveredModule, ModuleKind, group_by_priority
from .logging import addon_context, get_logger, is_debug
from .settings import DEFAULT_LOAD_TIMEOUT

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class LoadResult:
    name: str
    kind: ModuleKind
    success: bool
    skipped: bool = False
    elapsed_ms: int = 0
    error: str | None = None
    command_count: int = 0
    interaction_count: int = 0
    messages: tuple[str, ...] = ()

    @property
    def failed(self) -> bool:
        return not self.success and not self.skipped


LoadFn: TypeAlias = Callable[[DiscoveredModule], Awaitable[LoadResult]]


def _elapsed_ms(started: float) -> int:
    return round((time.perf_counter() - started) * 1000)


def failed_result(module: DiscoveredModule, error: str, *, elapsed_ms: int = 0) -> LoadResult:
    return LoadResult(
        name=module.display_name,
        kind=module.kind,
        success=False,
        elapsed_ms=elapsed_ms,
        error=error,
    )


async def load_module_timed(
    module: DiscoveredModule,
    load_one: LoadFn,
    *,
    timeout: float = DEFAULT_LOAD_TIMEOUT,
) -> LoadResult:
    started = time.perf_counter()
    with addon_context(addon=module.display_name, kind=module.kind):
        logger.debug("loader.start", version=module.version)
        try:
            with anyio.move_on_after(timeout) as scope:
                result = await load_one(module)
        except Exception as exc:
            elapsed = _elapsed_ms(started)
            logger.debug(
                "loader.error",
                error=str(exc),
                error_type=exc.__class__.__name__,
                elapsed_ms=elapsed,
            )
            if is_debug():
                logger.debug("loader.error_details", exc_info=exc)
            return failed_result(module, str(exc) or exc.__class__.__name__, elapsed_ms=elapsed)

        elapsed = _elapsed_ms(started)
        if scope.cancelled_caught:
            logger.debug("loader.timeout", timeout=timeout, elapsed_ms=elapsed)
            return failed_result(
                module,
                f"{module.kind} loading timeout ({timeout:g}s)",
                elapsed_ms=elapsed,
            )

        if result.success and not result.skipped:
            logger.debug("loader.loaded", version=module.version, elapsed_ms=elapsed)
        return replace(result, elapsed_ms=elapsed)


async def load_tiered(
    modules: Iterable[DiscoveredModule],
    load_one: LoadFn,
    *,
    timeout: float = DEFAULT_LOAD_TIMEOUT,
) -> list[LoadResult]:
    results: list[LoadResult] = []

    for priority, tier in group_by_priority(modules):
        if len(tier) == 1:
            logger.debug(
                "loader.tier",
                priority=priority,
                kind=tier[0].kind,
                module=tier[0].display_name,
            )
        else:
            logger.debug(
                "loader.tier",
                priority=priority,
                kind=tier[0].kind,
                count=len(tier),
                parallel=True,
            )

        slots: list[LoadResult | None] = [None] * len(tier)

        async def run(index: int, module: DiscoveredModule, slots: list[LoadResult | None]) -> None:
            slots[index] = await load_module_timed(module, load_one, timeout=timeout)

        async with anyio.create_task_group() as tg:
            for index, module in enumerate(tier):
                tg.start_soon(run, index, module, slots)

        for module, result in zip(tier, slots, strict=True):
            results.append(result or failed_result(module, "Unknown error"))

    return results
