"""Combined load summary for command and addon modules."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from .discovery import MODULE_KINDS, ModuleKind
from .loader import LoadResult
from .logging import get_logger, is_debug

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PhaseTotals:
    kind: ModuleKind
    loaded: int
    skipped: int
    failed: int
    elapsed_ms: int


@dataclass(frozen=True, slots=True)
class SummaryTotals:
    commands: int
    command_modules: int
    addons: int
    interactions: int
    skipped: tuple[LoadResult, ...]
    failed: tuple[LoadResult, ...]
    elapsed_ms: int
    phases: tuple[PhaseTotals, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failed


@dataclass(slots=True)
class LoadSummary:
    results: dict[ModuleKind, list[LoadResult]] = field(
        default_factory=lambda: {kind: [] for kind in MODULE_KINDS}
    )
    elapsed_ms: dict[ModuleKind, int] = field(
        default_factory=lambda: {kind: 0 for kind in MODULE_KINDS}
    )

    def store(
        self, kind: ModuleKind, results: Sequence[LoadResult], elapsed_ms: int
    ) -> None:
        self.results[kind] = list(results)
        self.elapsed_ms[kind] = elapsed_ms

    def is_empty(self) -> bool:
        return not any(self.results.values())

    def reset(self) -> None:
        for kind in MODULE_KINDS:
            self.results[kind] = []
            self.elapsed_ms[kind] = 0

    def totals(self) -> SummaryTotals:
        commands = [r for r in self.results["command"] if r.success]
        addons = [r for r in self.results["addon"] if r.success]
        everything = [*self.results["command"], *self.results["addon"]]
        return SummaryTotals(
            commands=sum(r.command_count for r in commands),
            command_modules=len(commands),
            addons=len(addons),
            interactions=sum(r.interaction_count for r in [*commands, *addons]),
            skipped=tuple(r for r in everything if r.skipped),
            failed=tuple(r for r in everything if r.failed),
            elapsed_ms=sum(self.elapsed_ms.values()),
            phases=tuple(self._phase(kind) for kind in MODULE_KINDS),
        )

    def _phase(self, kind: ModuleKind) -> PhaseTotals:
        results = self.results[kind]
        return PhaseTotals(
            kind=kind,
            loaded=sum(1 for r in results if r.success),
            skipped=sum(1 for r in results if r.skipped),
            failed=sum(1 for r in results if r.failed),
            elapsed_ms=self.elapsed_ms[kind],
        )

    def report(self) -> SummaryTotals | None:
        """Log the combined summary and reset for the next load cycle."""
        if self.is_empty():
            return None

        totals = self.totals()
        for phase in totals.phases:
            if not self.results[phase.kind]:
                continue
            logger.info(
                "summary.phase",
                kind=phase.kind,
                loaded=phase.loaded,
                skipped=phase.skipped,
                failed=phase.failed,
                elapsed_ms=phase.elapsed_ms,
            )

        if totals.command_modules or totals.addons:
            logger.info(
                "summary.loaded",
                ok=True,
                commands=totals.commands,
                command_modules=totals.command_modules,
                addons=totals.addons,
                interactions=totals.interactions,
                elapsed_ms=totals.elapsed_ms,
            )
            if is_debug():
                self._report_details()

        if totals.skipped:
            logger.warning("summary.skipped", count=len(totals.skipped))
            for result in totals.skipped:
                logger.warning(
                    "summary.module_skipped",
                    module=result.name,
                    kind=result.kind,
                    error=result.error,
                )

        if totals.failed:
            logger.error("summary.failed", count=len(totals.failed))
            for result in totals.failed:
                logger.error(
                    "summary.module_failed",
                    module=result.name,
                    kind=result.kind,
                    error=result.error,
                )

        self.reset()
        return totals

    def _report_details(self) -> None:
        for kind in MODULE_KINDS:
            for result in self.results[kind]:
                if not result.success:
                    continue
                logger.debug(
                    "summary.module",
                    module=result.name,
                    kind=kind,
                    elapsed_ms=result.elapsed_ms,
                    commands=result.command_count,
                    interactions=result.interaction_count,
                )
                for message in result.messages:
                    logger.debug("summary.module_message", module=result.name, message=message)
