from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import discord
import pytest

from tomte.commands import Command, CommandEntry, CommandTable, CommandSpec
from tomte.config import ConfigError
from tomte.descriptor import AddonDescriptor
from tomte.discord.sync import error_hint, sync_commands
from tomte.settings import DiscordSettings


async def _noop(interaction, client) -> None:
    return None


def _table(*names: str) -> CommandTable:
    table = CommandTable()
    for name in names:
        command = Command(data=CommandSpec(name=name, description=f"{name} command"), execute=_noop)
        table.claim(CommandEntry(command=command, descriptor=AddonDescriptor(author="me"), source="Core"))
    return table


def _http_error(code: int, status: int = 403) -> discord.HTTPException:
    response = SimpleNamespace(status=status, reason="Forbidden")
    return discord.HTTPException(response, {"code": code, "message": "denied"})


class FakeHTTP:
    def __init__(self, fail_with: discord.HTTPException | None = None) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.fail_with = fail_with

    async def bulk_upsert_global_commands(self, application_id: int, payload: list) -> list:
        self.calls.append(("global", application_id, payload))
        if self.fail_with is not None and payload:
            raise self.fail_with
        return payload

    async def bulk_upsert_guild_commands(
        self, application_id: int, guild_id: int, payload: list
    ) -> list:
        self.calls.append(("guild", application_id, guild_id, payload))
        if self.fail_with is not None and payload:
            raise self.fail_with
        return payload


@pytest.mark.anyio
async def test_global_sync_publishes_sorted_payloads() -> None:
    http = FakeHTTP()

    ok = await sync_commands(http, DiscordSettings(), 11, _table("pong", "ping"))

    assert ok
    [(scope, app_id, payload)] = http.calls
    assert (scope, app_id) == ("global", 11)
    assert [item["name"] for item in payload] == ["ping", "pong"]
    assert payload[0]["type"] == 1


@pytest.mark.anyio
async def test_guild_sync_clears_both_scopes_first() -> None:
    http = FakeHTTP()
    settings = DiscordSettings(registration_scope="guild", guild_id=5, clear_commands=True)

    assert await sync_commands(http, settings, 11, _table("ping"), pause=0)

    assert [call[0] for call in http.calls] == ["global", "guild", "guild"]
    assert http.calls[0][2] == []
    assert http.calls[1][3] == []
    assert [item["name"] for item in http.calls[2][3]] == ["ping"]


@pytest.mark.anyio
async def test_empty_table_is_not_synced() -> None:
    http = FakeHTTP()

    assert not await sync_commands(http, DiscordSettings(), 11, CommandTable())
    assert http.calls == []


@pytest.mark.anyio
async def test_api_errors_are_reported_not_raised() -> None:
    http = FakeHTTP(fail_with=_http_error(50001))

    assert not await sync_commands(http, DiscordSettings(), 11, _table("ping"))


@pytest.mark.anyio
async def test_guild_scope_without_guild_id_is_a_config_error() -> None:
    http = FakeHTTP()
    settings = DiscordSettings.model_construct(
        registration_scope="guild", guild_id=None, clear_commands=False
    )

    with pytest.raises(ConfigError, match="guild_id"):
        await sync_commands(http, settings, 11, _table("ping"))
    assert http.calls == []


def test_error_hints() -> None:
    assert "missing access" in error_hint(_http_error(50001)).lower()
    assert "token" in error_hint(_http_error(0, status=401)).lower()
    assert error_hint(_http_error(12345, status=500)) is None
