"""Route incoming py-cord interactions to commands and registered handlers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import discord

from ..interactions import InteractionKind, InteractionRegistry
from ..logging import get_logger

if TYPE_CHECKING:
    from ..host import HostContext

logger = get_logger(__name__)

COMMAND_ERROR_MESSAGE = "There was an error while executing this command."

# discord component_type codes
_COMPONENT_KINDS: dict[int, InteractionKind] = {
    2: "button",
    3: "string_select",
    5: "user_select",
    6: "role_select",
    7: "mentionable_select",
    8: "channel_select",
}


def _data(interaction: Any) -> dict[str, Any]:
    data = getattr(interaction, "data", None)
    return data if isinstance(data, dict) else {}


def resolve_kind(interaction: Any) -> InteractionKind | None:
    match getattr(interaction, "type", None):
        case discord.InteractionType.modal_submit:
            return "modal"
        case discord.InteractionType.component:
            return _COMPONENT_KINDS.get(_data(interaction).get("component_type"))
    return None


def custom_id_of(interaction: Any) -> str | None:
    value = _data(interaction).get("custom_id")
    return value if isinstance(value, str) else None


def command_name_of(interaction: Any) -> str | None:
    value = _data(interaction).get("name")
    return value if isinstance(value, str) else None


def discord_registry() -> InteractionRegistry:
    return InteractionRegistry(
        kind_resolver=resolve_kind, custom_id_resolver=custom_id_of
    )


async def reply_error(interaction: Any, message: str) -> None:
    try:
        if interaction.response.is_done():
            await interaction.followup.send(message, ephemeral=True)
        else:
            await interaction.response.send_message(message, ephemeral=True)
    except discord.HTTPException as exc:
        logger.error("interaction.error_reply_failed", error=str(exc))


async def run_command(host: HostContext, interaction: Any) -> bool:
    name = command_name_of(interaction)
    entry = host.commands.get(name) if name else None
    if entry is None:
        logger.warning("commands.not_found", command=name)
        return False

    logger.debug(
        "commands.execute",
        command=name,
        source=entry.source,
        user=str(getattr(interaction, "user", None)),
    )
    try:
        await entry.command.execute(interaction, host.client)
    except Exception as exc:
        logger.exception(
            "commands.failed",
            command=name,
            source=entry.source,
            error=str(exc),
            error_type=exc.__class__.__name__,
        )
        await reply_error(interaction, COMMAND_ERROR_MESSAGE)
        return False
    return True


async def handle_interaction(host: HostContext, interaction: Any) -> bool:
    interaction_type = getattr(interaction, "type", None)
    if interaction_type == discord.InteractionType.application_command:
        return await run_command(host, interaction)
    if interaction_type in (
        discord.InteractionType.component,
        discord.InteractionType.modal_submit,
    ):
        handled = await host.registry.dispatch(interaction, host.client)
        if not handled:
            logger.debug(
                "interaction.unhandled",
                custom_id=custom_id_of(interaction),
                kind=resolve_kind(interaction),
            )
        return handled
    logger.debug("interaction.ignored", interaction_type=str(interaction_type))
    return False
