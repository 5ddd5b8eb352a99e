"""Publish the command table to Discord."""

from __future__ import annotations

from typing import Any

import anyio
import discord

from ..commands import CommandTable
from ..config import ConfigError
from ..logging import get_logger, is_debug
from ..settings import DiscordSettings

logger = get_logger(__name__)

CLEAR_PAUSE_S = 2.0

ERROR_HINTS: dict[int, str] = {
    50001: "Bot is missing access to the guild. Make sure the bot is added to your server.",
    50013: "Bot lacks permissions. Ensure it has the 'applications.commands' scope.",
    10004: "Unknown guild. Verify discord.guild_id is correct.",
    401: "Invalid bot token. Check discord.token in your config.",
}


def error_hint(exc: discord.HTTPException) -> str | None:
    return ERROR_HINTS.get(exc.code) or ERROR_HINTS.get(exc.status)


async def clear_commands(http: Any, settings: DiscordSettings, client_id: int) -> list[str]:
    outcome: list[str] = []
    try:
        await http.bulk_upsert_global_commands(client_id, [])
        logger.info("sync.cleared", ok=True, scope="global")
        outcome.append("global: cleared")
    except discord.HTTPException as exc:
        logger.warning("sync.clear_failed", scope="global", error=str(exc))
        outcome.append("global: failed")

    if settings.guild_id is None:
        outcome.append("guild: skipped (no guild_id)")
    else:
        try:
            await http.bulk_upsert_guild_commands(client_id, settings.guild_id, [])
            logger.info("sync.cleared", ok=True, scope="guild", guild_id=settings.guild_id)
            outcome.append("guild: cleared")
        except discord.HTTPException as exc:
            logger.warning(
                "sync.clear_failed", scope="guild", guild_id=settings.guild_id, error=str(exc)
            )
            outcome.append("guild: failed")

    logger.info("sync.clear_summary", results=outcome)
    return outcome


async def sync_commands(
    http: Any,
    settings: DiscordSettings,
    client_id: int,
    table: CommandTable,
    *,
    pause: float = CLEAR_PAUSE_S,
) -> bool:
    """Replace the application's commands with the table; False on API errors."""
    if not len(table):
        logger.warning("sync.no_commands")
        return False

    if settings.registration_scope == "guild" and settings.guild_id is None:
        raise ConfigError('discord.guild_id is required when registration_scope is "guild"')

    try:
        if settings.clear_commands:
            await clear_commands(http, settings, client_id)
            await anyio.sleep(pause)

        payloads = table.payloads()
        if settings.registration_scope == "guild":
            await http.bulk_upsert_guild_commands(client_id, settings.guild_id, payloads)
        else:
            await http.bulk_upsert_global_commands(client_id, payloads)
    except discord.HTTPException as exc:
        logger.error(
            "sync.failed",
            code=exc.code,
            status=exc.status,
            error=str(exc),
            hint=error_hint(exc),
        )
        if is_debug():
            logger.debug(
                "sync.debug_info",
                client_id=client_id,
                guild_id=settings.guild_id,
                scope=settings.registration_scope,
            )
            raise
        return False

    logger.info(
        "sync.registered",
        ok=True,
        count=len(payloads),
        scope=settings.registration_scope,
        guild_id=settings.guild_id,
    )
    if settings.registration_scope == "global":
        logger.info("sync.global_delay", hint="global commands may take up to an hour to appear")
    return True
