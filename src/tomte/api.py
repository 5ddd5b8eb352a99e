"""Stable public API for tomte addons."""

from __future__ import annotations

from .bus import AddonBus, BusError
from .commands import Command, CommandSpec
from .config import ConfigError
from .exports import AddonExports, ExportError
from .host import Database, HostContext
from .interactions import (
    InteractionHandler,
    InteractionKind,
    InteractionRegistry,
    MatchStrategy,
)
from .logging import get_logger
from .plugins import Addon

TOMTE_ADDON_API_VERSION = 1

__all__ = [
    "Addon",
    "AddonBus",
    "AddonExports",
    "BusError",
    "Command",
    "CommandSpec",
    "ConfigError",
    "Database",
    "ExportError",
    "HostContext",
    "InteractionHandler",
    "InteractionKind",
    "InteractionRegistry",
    "MatchStrategy",
    "TOMTE_ADDON_API_VERSION",
    "get_logger",
]
