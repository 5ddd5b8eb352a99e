"""Load a single discovered module into a host.

Command names are first come, first served: a later claim on a taken name is
skipped with a message naming the owner. Exact interaction patterns are
exclusive: a collision fails the whole module and nothing it declared is kept.
"""

from __future__ import annotations

import inspect
from collections.abc import Iterable
from types import ModuleType
from typing import TYPE_CHECKING

import anyio

from .commands import CommandEntry
from .discovery import DiscoveredModule
from .interactions import InteractionConflict, InteractionHandler, InteractionRegistration
from .loader import LoadResult
from .logging import get_logger
from .plugins import PluginLoadFailed, import_entry, validate_addon, validate_commands

if TYPE_CHECKING:
    from .host import HostContext

logger = get_logger(__name__)


async def import_module(module: DiscoveredModule) -> ModuleType:
    # a worker thread keeps a blocking import from stalling the timeout
    return await anyio.to_thread.run_sync(
        import_entry, module.entry_path, abandon_on_cancel=True
    )


def _registrations(
    handlers: Iterable[InteractionHandler], module: DiscoveredModule
) -> list[InteractionRegistration]:
    return [
        InteractionRegistration.from_handler(
            handler, priority=module.priority, source=module.display_name
        )
        for handler in handlers
    ]


async def load_addon(host: HostContext, module: DiscoveredModule) -> LoadResult:
    addon = validate_addon(await import_module(module))

    outcome = addon.execute(host.client)
    if inspect.isawaitable(outcome):
        await outcome

    registrations = _registrations(addon.interactions, module)
    host.registry.register_many(registrations)

    return LoadResult(
        name=module.display_name,
        kind="addon",
        success=True,
        interaction_count=len(registrations),
    )


async def load_command(host: HostContext, module: DiscoveredModule) -> LoadResult:
    commands, messages = validate_commands(await import_module(module))
    if not commands:
        if messages:
            raise PluginLoadFailed(
                f"No valid commands found in module: {'; '.join(messages)}"
            )
        raise PluginLoadFailed("No valid commands found in module")

    claimed: list[str] = []
    skipped: list[str] = []
    registrations: list[InteractionRegistration] = []

    for command in commands:
        entry = CommandEntry(
            command=command,
            descriptor=module.descriptor,
            source=module.display_name,
        )
        owner = host.commands.claim(entry)
        if owner is not None:
            skipped.append(f"{entry.name} (already registered by {owner.source})")
            logger.warning(
                "commands.conflict",
                command=entry.name,
                owner=owner.source,
                module=module.display_name,
            )
            continue
        claimed.append(entry.name)
        registrations.extend(_registrations(command.interactions, module))

    if not claimed:
        return LoadResult(
            name=module.display_name,
            kind="command",
            success=False,
            skipped=True,
            error=f"All commands skipped due to conflicts: {', '.join(skipped)}",
            messages=(*messages, *(f"Skipped duplicate command {item}" for item in skipped)),
        )

    try:
        host.registry.register_many(registrations)
    except InteractionConflict:
        for name in claimed:
            host.commands.release(name, module.display_name)
        raise

    if skipped:
        messages.extend(f"Skipped duplicate command {item}" for item in skipped)

    return LoadResult(
        name=module.display_name,
        kind="command",
        success=True,
        command_count=len(claimed),
        interaction_count=len(registrations),
        messages=tuple(messages),
    )
