"""Import addon entry files from disk and validate what they export.

Each entry file is executed as a submodule of a synthetic package rooted at
its own directory, so helpers next to it are importable with relative
imports (``from .utils import load_config``) without touching ``sys.path``.

Expected exports:

* addon entry: ``ADDON`` with ``execute(client)`` and optional ``interactions``
* command entry: ``COMMAND``, a :class:`~tomte.commands.Command` or a list
* intent config: ``INTENTS``, a list of ``discord.Intents`` flag names
"""

from __future__ import annotations

import hashlib
import importlib.machinery
import importlib.util
import re
import sys
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any

from .commands import Command, CommandSpec
from .interactions import InteractionHandler

ADDON_ATTR = "ADDON"
COMMAND_ATTR = "COMMAND"
INTENTS_ATTR = "INTENTS"

PACKAGE_ROOT = "tomte_addons"

_STEM_RE = re.compile(r"[^0-9a-zA-Z_]")


class PluginLoadFailed(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class Addon:
    execute: Callable[[Any], Awaitable[None]]
    interactions: Sequence[InteractionHandler] = ()


def _package_name(directory: Path) -> str:
    digest = hashlib.sha1(str(directory).encode("utf-8")).hexdigest()[:10]
    slug = _STEM_RE.sub("_", directory.name) or "addon"
    return f"{PACKAGE_ROOT}.{slug}_{digest}"


def _ensure_package(name: str, directory: Path | None) -> None:
    if name in sys.modules:
        return
    spec = importlib.machinery.ModuleSpec(name, None, is_package=True)
    spec.submodule_search_locations = [str(directory)] if directory else []
    sys.modules[name] = importlib.util.module_from_spec(spec)


def forget_package(directory: Path) -> None:
    """Drop every cached module imported from ``directory`` (hot reload)."""
    package = _package_name(directory.absolute())
    for name in [n for n in sys.modules if n == package or n.startswith(package + ".")]:
        del sys.modules[name]


def import_entry(path: Path) -> ModuleType:
    """Execute ``path`` and return the module object.

    Entry files sharing a directory share one package, so helper modules
    imported by both a command file and an addon file are executed once.
    """
    path = path.absolute()
    if not path.is_file():
        raise PluginLoadFailed(f"Entry file not found: {path}")

    package = _package_name(path.parent)
    _ensure_package(PACKAGE_ROOT, None)
    _ensure_package(package, path.parent)

    module_name = f"{package}.{_STEM_RE.sub('_', path.stem)}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise PluginLoadFailed(f"Cannot import {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        sys.modules.pop(module_name, None)
        raise PluginLoadFailed(
            f"Import of {path.name} failed: {exc.__class__.__name__}: {exc}"
        ) from exc
    return module


def _interactions_of(owner: Any, label: str) -> tuple[InteractionHandler, ...]:
    declared = getattr(owner, "interactions", None)
    if declared is None:
        return ()
    if isinstance(declared, str | bytes) or not isinstance(declared, Sequence):
        raise PluginLoadFailed(f"{label}.interactions must be a list")
    handlers: list[InteractionHandler] = []
    for index, item in enumerate(declared):
        if not isinstance(item, InteractionHandler):
            raise PluginLoadFailed(
                f"{label}.interactions[{index}] is not an InteractionHandler"
            )
        handlers.append(item)
    return tuple(handlers)


def validate_addon(module: ModuleType) -> Addon:
    exported = getattr(module, ADDON_ATTR, None)
    if exported is None:
        raise PluginLoadFailed(f"Missing {ADDON_ATTR} export")
    execute = getattr(exported, "execute", None)
    if not callable(execute):
        raise PluginLoadFailed(f"{ADDON_ATTR} has no callable execute")
    return Addon(
        execute=execute,
        interactions=_interactions_of(exported, ADDON_ATTR),
    )


def validate_commands(module: ModuleType) -> tuple[list[Command], list[str]]:
    """Return the well-formed definitions plus a message per rejected one."""
    exported = getattr(module, COMMAND_ATTR, None)
    if exported is None:
        raise PluginLoadFailed(f"Missing {COMMAND_ATTR} export")

    definitions = list(exported) if isinstance(exported, list | tuple) else [exported]
    commands: list[Command] = []
    messages: list[str] = []

    for index, definition in enumerate(definitions):
        data = getattr(definition, "data", None)
        execute = getattr(definition, "execute", None)
        if data is None or not callable(execute):
            messages.append(
                f"Invalid command structure at {index}: missing data or execute function"
            )
            continue
        if not isinstance(data, CommandSpec):
            messages.append(f"Command at {index} does not contain valid CommandSpec data")
            continue
        problems = data.problems()
        if problems:
            messages.extend(problems)
            continue
        try:
            interactions = _interactions_of(definition, f"{COMMAND_ATTR}[{data.name}]")
        except PluginLoadFailed as exc:
            messages.append(str(exc))
            continue
        commands.append(Command(data=data, execute=execute, interactions=interactions))

    return commands, messages


def validate_intents(module: ModuleType) -> list[str]:
    exported = getattr(module, INTENTS_ATTR, None)
    if exported is None:
        raise PluginLoadFailed(f"Missing {INTENTS_ATTR} export")
    if isinstance(exported, str) or not isinstance(exported, Sequence):
        raise PluginLoadFailed(f"{INTENTS_ATTR} must be a list of intent names")
    names: list[str] = []
    for item in exported:
        if not isinstance(item, str) or not item.strip():
            raise PluginLoadFailed(f"{INTENTS_ATTR} entries must be non-empty strings")
        names.append(item.strip())
    return names
