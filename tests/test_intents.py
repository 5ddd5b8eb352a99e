from pathlib import Path

import pytest

from tomte.host import HostContext
from tomte.intents import IntentCollector, build_intents
from tests.addon_fixtures import addon_source, write_module


def test_collector_tracks_sources_and_rejects_unknown_names() -> None:
    collector = IntentCollector()

    assert collector.request("members", "Tickets")
    assert collector.request("members", "Polls")
    assert not collector.request("telepathy", "Polls")

    assert collector.requested() == ["members"]
    assert collector.sources("members") == ["Polls", "Tickets"]
    assert collector.summary() == {"members": ["Polls", "Tickets"]}


def test_late_requests_are_ignored() -> None:
    collector = IntentCollector()
    collector.lock()

    assert collector.request_many(["members", "presences"], "Late") == 0
    assert collector.requested() == []

    collector.clear()
    assert not collector.locked


def test_build_intents_adds_defaults() -> None:
    collector = IntentCollector()
    collector.request("voice_states", "Music")

    intents = build_intents(collector)

    assert intents.guilds
    assert intents.guild_messages
    assert intents.message_content
    assert intents.voice_states
    assert not intents.members


@pytest.mark.anyio
async def test_intent_configs_are_loaded_once_per_directory(
    host: HostContext, addons_root: Path
) -> None:
    write_module(
        addons_root,
        "Members",
        info={
            "author": "me",
            "addonfile": "main.py",
            "commandfile": "cmd.py",
            "intentconfig": "intents.py",
        },
        files={
            "main.py": addon_source(),
            "cmd.py": "COMMAND = []\n",
            "intents.py": "INTENTS = ['members']\n",
        },
    )
    write_module(
        addons_root,
        "BadIntents",
        info={"author": "me", "addonfile": "main.py", "intentconfig": "intents.py"},
        files={"main.py": addon_source(), "intents.py": "INTENTS = 'members'\n"},
    )

    loaded, failed = await host.load_intents()

    assert (loaded, failed) == (1, 1)
    assert host.intents.sources("members") == ["Members"]
