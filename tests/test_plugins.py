from pathlib import Path
from types import ModuleType

import pytest

from tomte import plugins
from tomte.commands import Command, CommandSpec
from tomte.interactions import InteractionHandler


async def _noop(*args) -> None:
    return None


def _module(**attrs) -> ModuleType:
    module = ModuleType("fake_entry")
    for key, value in attrs.items():
        setattr(module, key, value)
    return module


def test_import_entry_gives_each_directory_its_own_package(tmp_path: Path) -> None:
    for name in ("one", "two"):
        directory = tmp_path / name
        directory.mkdir()
        (directory / "shared.py").write_text(f"NAME = {name!r}\n", encoding="utf-8")
        (directory / "main.py").write_text("from .shared import NAME\n", encoding="utf-8")

    first = plugins.import_entry(tmp_path / "one" / "main.py")
    second = plugins.import_entry(tmp_path / "two" / "main.py")

    assert (first.NAME, second.NAME) == ("one", "two")
    assert first.__name__.startswith(plugins.PACKAGE_ROOT + ".one_")


def test_import_entry_wraps_errors(tmp_path: Path) -> None:
    with pytest.raises(plugins.PluginLoadFailed, match="Entry file not found"):
        plugins.import_entry(tmp_path / "missing.py")

    (tmp_path / "bad.py").write_text("import not_a_real_module_xyz\n", encoding="utf-8")
    with pytest.raises(plugins.PluginLoadFailed, match="Import of bad.py failed: ModuleNotFoundError"):
        plugins.import_entry(tmp_path / "bad.py")


def test_validate_addon_shapes() -> None:
    with pytest.raises(plugins.PluginLoadFailed, match="Missing ADDON export"):
        plugins.validate_addon(_module())
    with pytest.raises(plugins.PluginLoadFailed, match="no callable execute"):
        plugins.validate_addon(_module(ADDON=object()))
    with pytest.raises(plugins.PluginLoadFailed, match="must be a list"):
        plugins.validate_addon(_module(ADDON=plugins.Addon(execute=_noop, interactions="button")))

    addon = plugins.validate_addon(
        _module(ADDON=plugins.Addon(execute=_noop, interactions=[InteractionHandler("button", "x", _noop)]))
    )
    assert len(addon.interactions) == 1


def test_validate_commands_collects_messages() -> None:
    good = Command(data=CommandSpec(name="ping", description="Ping"), execute=_noop)
    bad_name = Command(data=CommandSpec(name="Bad Name", description="x"), execute=_noop)

    commands, messages = plugins.validate_commands(
        _module(COMMAND=[good, bad_name, object(), Command(data={"name": "raw"}, execute=_noop)])
    )

    assert commands == [good]
    assert messages[0].startswith("Invalid command name 'Bad Name'")
    assert messages[1] == "Invalid command structure at 2: missing data or execute function"
    assert messages[2] == "Command at 3 does not contain valid CommandSpec data"


def test_single_command_export_is_accepted() -> None:
    single = Command(data=CommandSpec(name="solo", description="Solo"), execute=_noop)

    commands, messages = plugins.validate_commands(_module(COMMAND=single))

    assert commands == [single]
    assert messages == []


def test_validate_intents() -> None:
    assert plugins.validate_intents(_module(INTENTS=[" members ", "presences"])) == [
        "members",
        "presences",
    ]
    with pytest.raises(plugins.PluginLoadFailed):
        plugins.validate_intents(_module(INTENTS="members"))
    with pytest.raises(plugins.PluginLoadFailed):
        plugins.validate_intents(_module(INTENTS=[1]))


def test_command_spec_problems() -> None:
    assert CommandSpec(name="ok-name_1", description="fine").problems() == []
    assert len(CommandSpec(name="x" * 33, description="").problems()) == 2
    assert CommandSpec(name="long", description="d" * 101).problems() == [
        "Command 'long' description exceeds 100 characters"
    ]
