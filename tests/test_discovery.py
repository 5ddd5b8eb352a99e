from pathlib import Path

from tomte.discovery import discover_all, discover_modules, group_by_priority
from tests.addon_fixtures import write_module


def test_flat_and_creator_layouts(addons_root: Path) -> None:
    write_module(
        addons_root,
        "Polls",
        info={"author": "me", "addonfile": "main.py"},
        files={"main.py": "ADDON = None"},
    )
    creator = addons_root / "RiktigaTomten"
    write_module(
        creator,
        "Tickets",
        info={"author": "tomten", "name": "Tickets", "commandfile": "cmd.py", "addonfile": "main.py"},
        files={"cmd.py": "COMMAND = []", "main.py": "ADDON = None"},
    )

    report = discover_all(addons_root)

    addons = {module.label: module for module in report.of("addon")}
    commands = {module.label: module for module in report.of("command")}
    assert set(addons) == {"Polls", "RiktigaTomten/Tickets"}
    assert set(commands) == {"RiktigaTomten/Tickets"}
    tickets = addons["RiktigaTomten/Tickets"]
    assert tickets.creator == "RiktigaTomten"
    assert tickets.entry_path == (creator / "Tickets" / "main.py").absolute()
    assert commands["RiktigaTomten/Tickets"].entry_path.name == "cmd.py"


def test_creator_nesting_is_one_level_only(addons_root: Path) -> None:
    write_module(
        addons_root / "Org" / "Team",
        "Deep",
        info={"author": "me", "addonfile": "main.py"},
        files={"main.py": ""},
    )

    assert discover_modules(addons_root, "addon") == []


def test_extensions_are_found_even_if_parent_is_not_an_addon(addons_root: Path) -> None:
    parent = write_module(
        addons_root,
        "Core",
        info={"author": "me", "commandfile": "cmd.py", "extensions": "ext"},
        files={"cmd.py": ""},
    )
    write_module(
        parent / "ext",
        "Stats",
        info={"author": "me", "addonfile": "main.py"},
        files={"main.py": ""},
    )
    (parent / "ext" / "NoDescriptor").mkdir()

    addons = discover_modules(addons_root, "addon")

    assert len(addons) == 1
    stats = addons[0]
    assert stats.is_extension
    assert stats.parent == "Core"
    assert stats.display_name == "Core/Stats"


def test_disabled_invalid_and_missing_entries_are_excluded(addons_root: Path) -> None:
    write_module(
        addons_root,
        "Off",
        info={"author": "me", "addonfile": "main.py", "enabled": False},
        files={"main.py": ""},
    )
    write_module(addons_root, "NoAuthor", info={"addonfile": "main.py"}, files={"main.py": ""})
    write_module(addons_root, "Ghost", info={"author": "me", "addonfile": "missing.py"})

    report = discover_all(addons_root)

    assert report.total == 0
    assert [rejection.label for rejection in report.rejected] == ["NoAuthor"]
    assert any("author" in reason for reason in report.rejected[0].reasons)


def test_legacy_type_and_mainfile(addons_root: Path) -> None:
    write_module(
        addons_root,
        "Legacy",
        info={"author": "me", "type": "command", "commandfile": "cmd.py", "mainfile": "main.py"},
        files={"cmd.py": "", "main.py": ""},
    )
    write_module(
        addons_root,
        "OldMain",
        info={"author": "me", "mainfile": "main.py"},
        files={"main.py": ""},
    )

    report = discover_all(addons_root)

    assert [module.label for module in report.of("command")] == ["Legacy"]
    assert [module.label for module in report.of("addon")] == ["OldMain"]


def test_missing_root_yields_nothing(tmp_path: Path) -> None:
    report = discover_all(tmp_path / "nope")

    assert report.total == 0
    assert report.rejected == []


def test_group_by_priority_orders_tiers_descending(addons_root: Path) -> None:
    for name, priority in (("A", 0), ("B", 10), ("C", 10), ("D", 5)):
        write_module(
            addons_root,
            name,
            info={"author": "me", "addonfile": "main.py", "priority": priority},
            files={"main.py": ""},
        )

    tiers = group_by_priority(discover_modules(addons_root, "addon"))

    assert [priority for priority, _ in tiers] == [10, 5, 0]
    assert sorted(module.label for module in tiers[0][1]) == ["B", "C"]
