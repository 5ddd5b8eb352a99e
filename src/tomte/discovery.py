"""Addon discovery.

Supported layouts under the addons root::

    addons/MyAddon/addon.info
    addons/Creator/MyAddon/addon.info
    addons/MyAddon/<extensions>/SubAddon/addon.info

A single walk collects every descriptor-bearing directory once; each is
then checked against both module kinds.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, TypeAlias

from .config import DESCRIPTOR_FILENAME
from .descriptor import (
    AddonDescriptor,
    DescriptorValue,
    read_descriptor,
    validate_descriptor,
)
from .logging import get_logger

logger = get_logger(__name__)

ModuleKind: TypeAlias = Literal["addon", "command"]

MODULE_KINDS: tuple[ModuleKind, ...] = ("command", "addon")


@dataclass(frozen=True, slots=True)
class DiscoveredModule:
    dir_name: str
    dir_path: Path
    descriptor: AddonDescriptor
    entry_path: Path
    kind: ModuleKind
    creator: str | None = None
    is_extension: bool = False
    parent: str | None = None

    @property
    def label(self) -> str:
        name = self.descriptor.name or self.dir_name
        return f"{self.creator}/{name}" if self.creator else name

    @property
    def display_name(self) -> str:
        if self.is_extension and self.parent:
            return f"{self.parent}/{self.label}"
        return self.label

    @property
    def priority(self) -> int:
        return self.descriptor.priority

    @property
    def version(self) -> str:
        return self.descriptor.version or "1.0"


@dataclass(frozen=True, slots=True)
class Rejection:
    label: str
    dir_path: Path
    reasons: tuple[str, ...]


@dataclass(slots=True)
class DiscoveryReport:
    modules: dict[ModuleKind, list[DiscoveredModule]] = field(
        default_factory=lambda: {kind: [] for kind in MODULE_KINDS}
    )
    rejected: list[Rejection] = field(default_factory=list)

    def of(self, kind: ModuleKind) -> list[DiscoveredModule]:
        return list(self.modules[kind])

    @property
    def total(self) -> int:
        return sum(len(items) for items in self.modules.values())


@dataclass(frozen=True, slots=True)
class _Candidate:
    dir_path: Path
    info: dict[str, DescriptorValue] | None
    creator: str | None = None
    parent: str | None = None

    @property
    def label(self) -> str:
        name = self.dir_path.name
        if self.parent:
            return f"{self.parent}/{name}"
        return f"{self.creator}/{name}" if self.creator else name


def _subdirs(path: Path) -> list[Path]:
    try:
        return sorted(entry for entry in path.iterdir() if entry.is_dir())
    except OSError as exc:
        logger.warning("discovery.list_failed", path=str(path), error=str(exc))
        return []


def _has_descriptor(path: Path) -> bool:
    return (path / DESCRIPTOR_FILENAME).is_file()


def _key(path: Path) -> Path:
    try:
        return path.resolve()
    except OSError:
        return path.absolute()


def _extension_candidates(
    owner: _Candidate, processed: set[Path]
) -> list[_Candidate]:
    info = owner.info
    if not info:
        return []
    relative = info.get("extensions")
    if not isinstance(relative, str) or not relative.strip():
        return []

    ext_root = owner.dir_path / relative.strip()
    if not ext_root.is_dir():
        logger.debug(
            "discovery.extensions_missing",
            module=owner.label,
            path=str(ext_root),
        )
        return []

    found: list[_Candidate] = []
    for ext_dir in _subdirs(ext_root):
        key = _key(ext_dir)
        if key in processed:
            continue
        processed.add(key)
        if not _has_descriptor(ext_dir):
            logger.warning(
                "discovery.extension_without_descriptor",
                parent=owner.label,
                extension=ext_dir.name,
            )
            continue
        found.append(
            _Candidate(
                dir_path=ext_dir,
                info=read_descriptor(ext_dir / DESCRIPTOR_FILENAME),
                parent=owner.label,
            )
        )
    return found


def _walk(root: Path) -> list[_Candidate]:
    processed: set[Path] = set()
    candidates: list[_Candidate] = []

    for entry in _subdirs(root):
        if _has_descriptor(entry):
            owners = [(entry, None)]
        else:
            # creator folder: exactly one level of nesting
            owners = [(sub, entry.name) for sub in _subdirs(entry) if _has_descriptor(sub)]

        for dir_path, creator in owners:
            key = _key(dir_path)
            if key in processed:
                continue
            processed.add(key)
            candidate = _Candidate(
                dir_path=dir_path,
                info=read_descriptor(dir_path / DESCRIPTOR_FILENAME),
                creator=creator,
            )
            candidates.append(candidate)
            candidates.extend(_extension_candidates(candidate, processed))

    return candidates


def _entry_field(
    descriptor: AddonDescriptor, kind: ModuleKind, label: str
) -> str | None:
    if kind == "command":
        return descriptor.commandfile
    if descriptor.addonfile:
        return descriptor.addonfile
    if descriptor.mainfile:
        logger.warning(
            "discovery.deprecated_mainfile",
            module=label,
            hint="rename 'mainfile' to 'addonfile'",
        )
        return descriptor.mainfile
    return None


def _accept(
    candidate: _Candidate, descriptor: AddonDescriptor, kind: ModuleKind
) -> DiscoveredModule | None:
    if descriptor.type is not None and descriptor.type.lower() != kind:
        return None

    entry = _entry_field(descriptor, kind, candidate.label)
    if entry is None:
        return None

    entry_path = candidate.dir_path / entry
    if not entry_path.is_file():
        logger.error(
            "discovery.entry_missing",
            module=candidate.label,
            kind=kind,
            entry=entry,
        )
        return None

    return DiscoveredModule(
        dir_name=candidate.dir_path.name,
        dir_path=candidate.dir_path,
        descriptor=descriptor,
        entry_path=entry_path.absolute(),
        kind=kind,
        creator=candidate.creator,
        is_extension=candidate.parent is not None,
        parent=candidate.parent,
    )


def discover_all(root: Path) -> DiscoveryReport:
    report = DiscoveryReport()
    if not root.is_dir():
        logger.debug("discovery.root_missing", root=str(root))
        return report

    for candidate in _walk(root):
        descriptor_path = candidate.dir_path / DESCRIPTOR_FILENAME
        if candidate.info is None:
            report.rejected.append(
                Rejection(
                    label=candidate.label,
                    dir_path=candidate.dir_path,
                    reasons=(f"unreadable {DESCRIPTOR_FILENAME}",),
                )
            )
            continue

        errors = validate_descriptor(candidate.info, descriptor_path)
        if errors:
            logger.error(
                "discovery.descriptor_invalid",
                module=candidate.label,
                errors=errors,
            )
            report.rejected.append(
                Rejection(
                    label=candidate.label,
                    dir_path=candidate.dir_path,
                    reasons=tuple(errors),
                )
            )
            continue

        descriptor = AddonDescriptor.from_mapping(candidate.info)
        if not descriptor.enabled:
            logger.debug("discovery.disabled", module=candidate.label)
            continue
        if descriptor.type is not None:
            logger.warning(
                "discovery.deprecated_type",
                module=candidate.label,
                type=descriptor.type,
                hint="use 'commandfile' for commands or 'addonfile' for addons",
            )

        for kind in MODULE_KINDS:
            module = _accept(candidate, descriptor, kind)
            if module is None:
                continue
            report.modules[kind].append(module)
            if module.is_extension:
                logger.debug(
                    "discovery.extension_found",
                    module=module.dir_name,
                    parent=module.parent,
                    kind=kind,
                )

    return report


def discover_modules(root: Path, kind: ModuleKind) -> list[DiscoveredModule]:
    return discover_all(root).of(kind)


def group_by_priority(
    modules: Iterable[DiscoveredModule],
) -> list[tuple[int, list[DiscoveredModule]]]:
    tiers: dict[int, list[DiscoveredModule]] = {}
    for module in modules:
        tiers.setdefault(module.priority, []).append(module)
    return sorted(tiers.items(), key=lambda item: item[0], reverse=True)
