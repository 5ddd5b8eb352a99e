"""Registry of APIs addons publish for each other, keyed ``addon.export``."""

from __future__ import annotations

import re
import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from .logging import current_addon, get_logger

logger = get_logger(__name__)

_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class ExportError(ValueError):
    pass


def export_key(addon: str, export: str) -> str:
    for label, part in (("addon", addon), ("export", export)):
        if not isinstance(part, str) or not part:
            raise ExportError(f"{label} name must be a non-empty string")
        if not _NAME_RE.match(part):
            raise ExportError(
                f"{label} name can only contain letters, numbers, underscores and hyphens: {part}"
            )
    return f"{addon}.{export}"


@dataclass(frozen=True, slots=True)
class RegisteredExport:
    addon: str
    export: str
    api: Any
    registered_at: float
    source: str | None = None
    version: str | None = None
    description: str | None = None
    dependencies: tuple[str, ...] = ()

    @property
    def key(self) -> str:
        return f"{self.addon}.{self.export}"


@dataclass(frozen=True, slots=True)
class DependencyCheck:
    satisfied: bool
    missing: tuple[str, ...]


class AddonExports:
    def __init__(self) -> None:
        self._exports: dict[str, RegisteredExport] = {}

    def register(
        self,
        addon: str,
        export: str,
        api: Any,
        *,
        version: str | None = None,
        description: str | None = None,
        dependencies: Iterable[str] = (),
        source: str | None = None,
    ) -> RegisteredExport:
        key = export_key(addon, export)
        entry = RegisteredExport(
            addon=addon,
            export=export,
            api=api,
            registered_at=time.time(),
            source=source or current_addon(),
            version=version,
            description=description,
            dependencies=tuple(dependencies),
        )
        if key in self._exports:
            logger.warning("exports.overwrite", key=key, previous=self._exports[key].source)
        else:
            logger.debug("exports.registered", key=key, source=entry.source)

        check = self.check_dependencies(entry.dependencies)
        if not check.satisfied:
            logger.warning("exports.missing_dependencies", key=key, missing=list(check.missing))

        self._exports[key] = entry
        return entry

    def get(self, addon: str, export: str) -> Any:
        entry = self._exports.get(export_key(addon, export))
        if entry is None:
            logger.debug("exports.not_found", key=f"{addon}.{export}")
            return None
        return entry.api

    def get_by_key(self, key: str) -> Any:
        entry = self._exports.get(key)
        return entry.api if entry is not None else None

    def is_loaded(self, addon: str, export: str) -> bool:
        return export_key(addon, export) in self._exports

    def info(self, addon: str, export: str) -> RegisteredExport | None:
        return self._exports.get(export_key(addon, export))

    def exports_of(self, addon: str) -> list[str]:
        return sorted(e.export for e in self._exports.values() if e.addon == addon)

    def addon_names(self) -> list[str]:
        return sorted({e.addon for e in self._exports.values()})

    def keys(self) -> list[str]:
        return sorted(self._exports)

    def __len__(self) -> int:
        return len(self._exports)

    def unregister(self, addon: str, export: str) -> bool:
        key = export_key(addon, export)
        removed = self._exports.pop(key, None) is not None
        logger.debug("exports.unregistered", key=key, removed=removed)
        return removed

    def unregister_addon(self, addon: str) -> int:
        keys = [key for key, e in self._exports.items() if e.addon == addon]
        for key in keys:
            del self._exports[key]
        logger.info("exports.addon_unregistered", addon=addon, count=len(keys))
        return len(keys)

    def remove_source(self, source: str) -> int:
        keys = [key for key, e in self._exports.items() if e.source == source]
        for key in keys:
            del self._exports[key]
        return len(keys)

    def check_dependencies(self, dependencies: Iterable[str]) -> DependencyCheck:
        missing = tuple(dep for dep in dependencies if dep not in self._exports)
        return DependencyCheck(satisfied=not missing, missing=missing)

    def dependents(self, addon: str, export: str) -> list[str]:
        key = export_key(addon, export)
        return sorted(e.key for e in self._exports.values() if key in e.dependencies)

    def clear(self) -> None:
        self._exports.clear()
        logger.warning("exports.cleared")
