"""The gateway client that hosts addons."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import discord

from ..banner import print_banner
from ..bus import AddonBus
from ..exports import AddonExports
from ..host import HostContext
from ..intents import build_intents
from ..logging import get_logger
from ..settings import DiscordSettings, TomteSettings, require_discord
from .events import discord_registry, handle_interaction
from .sync import sync_commands

logger = get_logger(__name__)


async def start_host(
    host: HostContext, *, http: Any, settings: DiscordSettings, client_id: int
) -> None:
    """Load commands, publish them, then load addons and report."""
    commands = await host.load_commands()
    if commands:
        await sync_commands(http, settings, client_id, host.commands)
    await host.load_addons()
    host.report()


class TomteClient(discord.Client):
    # discord.Client rather than discord.Bot: commands come from addons and are
    # published by sync_commands, never by py-cord's own command sync
    def __init__(
        self,
        host: HostContext,
        settings: DiscordSettings,
        *,
        client_id: int,
        intents: discord.Intents,
    ) -> None:
        super().__init__(intents=intents)
        self.host = host
        self.settings = settings
        self.client_id = client_id
        self._started = False
        host.client = self

    @property
    def database(self) -> Any:
        return self.host.database

    @property
    def bus(self) -> AddonBus:
        return self.host.bus

    @property
    def exports(self) -> AddonExports:
        return self.host.exports

    async def on_ready(self) -> None:
        if self._started:
            logger.info("client.resumed", user=str(self.user))
            return
        self._started = True
        logger.info(
            "client.ready",
            ok=True,
            user=str(self.user),
            guilds=len(self.guilds),
            users=len(self.users),
        )
        await start_host(
            self.host, http=self.http, settings=self.settings, client_id=self.client_id
        )
        print_banner()

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        try:
            await handle_interaction(self.host, interaction)
        except Exception as exc:
            logger.exception("interaction.failed", error=str(exc))


def build_host(settings: TomteSettings, *, config_path: Path | None) -> HostContext:
    return HostContext(
        root=settings.addons_root(config_path=config_path),
        timeout=settings.addons.load_timeout,
        enabled=settings.addons.enabled,
        registry=discord_registry(),
    )


def build_client(
    host: HostContext, settings: TomteSettings, *, client_id: int
) -> TomteClient:
    intents = build_intents(host.intents)
    host.intents.lock()
    return TomteClient(host, settings.discord, client_id=client_id, intents=intents)


async def run_bot(settings: TomteSettings, *, config_path: Path | None) -> None:
    token, client_id = require_discord(settings)
    host = build_host(settings, config_path=config_path)
    await host.load_intents()
    client = build_client(host, settings, client_id=client_id)
    logger.info("client.connecting", addons_root=str(host.root))
    try:
        await client.start(token)
    finally:
        if not client.is_closed():
            await client.close()
