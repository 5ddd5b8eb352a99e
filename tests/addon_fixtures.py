from __future__ import annotations

import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


def descriptor_text(**fields: object) -> str:
    lines = ["# generated for tests"]
    for key, value in fields.items():
        if isinstance(value, bool):
            value = "true" if value else "false"
        lines.append(f"{key}: {value}")
    return "\n".join(lines) + "\n"


def write_module(
    parent: Path,
    dir_name: str,
    *,
    info: dict[str, object] | str,
    files: dict[str, str] | None = None,
) -> Path:
    directory = parent / dir_name
    directory.mkdir(parents=True, exist_ok=True)
    text = info if isinstance(info, str) else descriptor_text(**info)
    (directory / "addon.info").write_text(text, encoding="utf-8")
    for name, source in (files or {}).items():
        target = directory / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(textwrap.dedent(source).lstrip(), encoding="utf-8")
    return directory


def addon_source(
    *,
    body: str = "pass",
    interactions: str = "()",
    prelude: str = "",
) -> str:
    """Source of an addon entry whose execute() runs ``body``."""
    return (
        "import anyio\n"
        "from tomte.api import Addon, InteractionHandler\n"
        f"{textwrap.dedent(prelude)}\n"
        "async def execute(client):\n"
        f"{textwrap.indent(textwrap.dedent(body).strip(), '    ')}\n"
        "\n"
        f"ADDON = Addon(execute=execute, interactions={interactions})\n"
    )


def command_source(*names: str, interactions: str = "()") -> str:
    lines = [
        "from tomte.api import Command, CommandSpec, InteractionHandler",
        "",
        "async def run(interaction, client):",
        "    client.events.append(('command', interaction))",
        "",
        "async def on_click(interaction, client):",
        "    return True",
        "",
        "COMMAND = [",
    ]
    for name in names:
        lines.append(
            f"    Command(data=CommandSpec(name={name!r}, description='test {name}'), "
            f"execute=run, interactions={interactions}),"
        )
    lines.append("]")
    return "\n".join(lines) + "\n"


@dataclass
class RecordingClient:
    """Stand-in client; addons append to ``events`` to expose ordering."""

    events: list[Any] = field(default_factory=list)
    user: Any = None
    host: Any = None

    @property
    def bus(self) -> Any:
        return self.host.bus

    @property
    def exports(self) -> Any:
        return self.host.exports


@dataclass
class FakeInteraction:
    kind: str
    custom_id: str
    replies: list[str] = field(default_factory=list)
