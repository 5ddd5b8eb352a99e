"""Slash command declarations and the host's command table."""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from .descriptor import AddonDescriptor
from .interactions import InteractionHandler

CommandFn: TypeAlias = Callable[[Any, Any], Awaitable[None]]

COMMAND_NAME_RE = re.compile(r"^[-_a-z0-9]{1,32}$")
MAX_DESCRIPTION = 100


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """Chat-input command schema, sent to Discord as-is on sync."""

    name: str
    description: str
    options: Sequence[dict[str, Any]] = ()
    dm_permission: bool = True

    def problems(self) -> list[str]:
        issues: list[str] = []
        if not isinstance(self.name, str) or not COMMAND_NAME_RE.match(self.name):
            issues.append(
                f"Invalid command name {self.name!r} (1-32 lowercase letters, "
                "digits, '-' or '_')"
            )
        if not isinstance(self.description, str) or not self.description.strip():
            issues.append(f"Command {self.name!r} needs a non-empty description")
        elif len(self.description) > MAX_DESCRIPTION:
            issues.append(
                f"Command {self.name!r} description exceeds {MAX_DESCRIPTION} characters"
            )
        return issues

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": 1,
            "name": self.name,
            "description": self.description,
            "options": [dict(option) for option in self.options],
            "dm_permission": self.dm_permission,
        }


@dataclass(frozen=True, slots=True)
class Command:
    data: CommandSpec
    execute: CommandFn
    interactions: Sequence[InteractionHandler] = ()


@dataclass(frozen=True, slots=True)
class CommandEntry:
    command: Command
    descriptor: AddonDescriptor
    source: str

    @property
    def name(self) -> str:
        return self.command.data.name


@dataclass(slots=True)
class CommandTable:
    _entries: dict[str, CommandEntry] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[CommandEntry]:
        return iter(self._entries.values())

    def get(self, name: str) -> CommandEntry | None:
        return self._entries.get(name)

    def claim(self, entry: CommandEntry) -> CommandEntry | None:
        """Insert ``entry`` unless the name is taken; return the current owner."""
        existing = self._entries.get(entry.name)
        if existing is not None:
            return existing
        self._entries[entry.name] = entry
        return None

    def release(self, name: str, source: str) -> bool:
        entry = self._entries.get(name)
        if entry is None or entry.source != source:
            return False
        del self._entries[name]
        return True

    def remove_source(self, source: str) -> list[str]:
        names = [name for name, entry in self._entries.items() if entry.source == source]
        for name in names:
            del self._entries[name]
        return names

    def names(self) -> list[str]:
        return sorted(self._entries)

    def payloads(self) -> list[dict[str, Any]]:
        return [self._entries[name].command.data.to_payload() for name in self.names()]
