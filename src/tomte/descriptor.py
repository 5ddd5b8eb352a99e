"""Parsing and validation of ``addon.info`` descriptor files.

The format is line oriented ``key: value`` text::

    # comments and blank lines are ignored
    name: Tickets
    author: RiktigaTomten
    version: 1.2
    priority: 10
    commandfile: commands.py
    addonfile: main.py
    homepage: https://example.invalid/tickets

Only the first colon splits a line, so URLs survive intact.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import TypeAlias

from .logging import get_logger

logger = get_logger(__name__)

DescriptorValue: TypeAlias = str | int | float | bool

PATH_FIELDS = (
    "addonfile",
    "commandfile",
    "mainfile",
    "eventfile",
    "intentconfig",
    "extensions",
)
ENTRY_FIELDS = ("addonfile", "commandfile", "mainfile")

_VERSION_RE = re.compile(r"^\d+\.\d+(\.\d+)?$")
_KNOWN_KEYS = frozenset(
    (
        "author",
        "name",
        "version",
        "priority",
        "enabled",
        "type",
        *PATH_FIELDS,
    )
)


def _coerce_number(value: str) -> int | float | str:
    try:
        return int(value)
    except ValueError:
        pass
    try:
        number = float(value)
    except ValueError:
        return value
    if number != number or number in (float("inf"), float("-inf")):
        return value
    return int(number) if number.is_integer() else number


def parse_descriptor(text: str) -> dict[str, DescriptorValue]:
    info: dict[str, DescriptorValue] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        if not key:
            continue
        value = value.strip()
        lowered = value.lower()
        if lowered == "true":
            info[key] = True
        elif lowered == "false":
            info[key] = False
        elif key == "priority":
            info[key] = _coerce_number(value)
        else:
            info[key] = value
    return info


def read_descriptor(path: Path) -> dict[str, DescriptorValue] | None:
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("descriptor.read_failed", path=str(path), error=str(exc))
        return None
    return parse_descriptor(raw)


def _is_absolute(value: str) -> bool:
    return PurePosixPath(value).is_absolute() or PureWindowsPath(value).is_absolute()


def validate_descriptor(
    info: Mapping[str, DescriptorValue], path: Path
) -> list[str]:
    """Return every problem with ``info``; an empty list means it is usable.

    A non-standard ``version`` is reported as a warning log only.
    """
    errors: list[str] = []

    author = info.get("author")
    if not isinstance(author, str) or not author.strip():
        errors.append('Missing or invalid "author" field (must be non-empty string)')

    if not any(info.get(key) for key in ENTRY_FIELDS):
        errors.append("Must specify at least one of: addonfile, commandfile, mainfile")

    if "priority" in info:
        priority = info["priority"]
        if isinstance(priority, bool) or not isinstance(priority, int | float):
            errors.append(
                f'Invalid "priority" field: "{priority}" (must be a number)'
            )
        elif priority < 0:
            errors.append(f'Invalid "priority" field: {priority} (must be >= 0)')
        elif not float(priority).is_integer():
            errors.append(f'Invalid "priority" field: {priority} (must be an integer)')

    if "enabled" in info and not isinstance(info["enabled"], bool):
        errors.append(
            f'Invalid "enabled" field: "{info["enabled"]}" (must be boolean true/false)'
        )

    if "version" in info:
        version = info["version"]
        if not isinstance(version, str):
            errors.append('Invalid "version" field: must be a string')
        elif not _VERSION_RE.match(version):
            logger.warning(
                "descriptor.version_nonstandard",
                version=version,
                path=str(path),
                expected="X.Y or X.Y.Z",
            )

    if "name" in info:
        name = info["name"]
        if not isinstance(name, str) or not name.strip():
            errors.append('Invalid "name" field: must be non-empty string')

    for key in PATH_FIELDS:
        value = info.get(key)
        if value is None or value == "":
            continue
        if not isinstance(value, str):
            errors.append(
                f"Invalid file path in {key!r}: must be a string, "
                f"got {type(value).__name__}"
            )
        elif _is_absolute(value):
            errors.append(
                f'Invalid file path: "{value}" (must be relative, not absolute)'
            )

    return errors


@dataclass(frozen=True, slots=True)
class AddonDescriptor:
    author: str
    name: str | None = None
    version: str | None = None
    priority: int = 0
    enabled: bool = True
    addonfile: str | None = None
    commandfile: str | None = None
    mainfile: str | None = None
    eventfile: str | None = None
    intentconfig: str | None = None
    extensions: str | None = None
    type: str | None = None
    extra: dict[str, DescriptorValue] = field(default_factory=dict)
    raw: dict[str, DescriptorValue] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, info: Mapping[str, DescriptorValue]) -> AddonDescriptor:
        """Build a record from a mapping already accepted by ``validate_descriptor``."""

        def text(key: str) -> str | None:
            value = info.get(key)
            if value is None:
                return None
            cleaned = str(value).strip()
            return cleaned or None

        priority = info.get("priority", 0)
        enabled = info.get("enabled", True)
        return cls(
            author=str(info.get("author", "")).strip(),
            name=text("name"),
            version=text("version"),
            priority=int(priority) if not isinstance(priority, bool) else 0,
            enabled=enabled if isinstance(enabled, bool) else True,
            addonfile=text("addonfile"),
            commandfile=text("commandfile"),
            mainfile=text("mainfile"),
            eventfile=text("eventfile"),
            intentconfig=text("intentconfig"),
            extensions=text("extensions"),
            type=text("type"),
            extra={k: v for k, v in info.items() if k not in _KNOWN_KEYS},
            raw=dict(info),
        )
