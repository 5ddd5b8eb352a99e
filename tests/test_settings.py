from pathlib import Path

import pytest

from tomte.config import ConfigError
from tomte.settings import (
    TomteSettings,
    load_settings,
    load_settings_if_exists,
    load_settings_or_env,
    require_discord,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    import os

    for key in list(os.environ):
        if key.startswith("TOMTE__"):
            monkeypatch.delenv(key)


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_settings_from_toml_resolve_relative_addons_root(tmp_path: Path) -> None:
    config_path = _write(
        tmp_path / "tomte.toml",
        """
debug = true

[discord]
token = "  secret  "
client_id = "1234"
registration_scope = "GUILD"
guild_id = 42

[addons]
root = "plugins"
load_timeout = 12.5
""",
    )

    settings, path = load_settings(config_path)

    assert path == config_path
    assert settings.debug is True
    assert settings.discord.token.get_secret_value() == "secret"
    assert settings.discord.client_id == 1234
    assert settings.discord.registration_scope == "guild"
    assert settings.addons.load_timeout == 12.5
    assert settings.addons_root(config_path=config_path) == tmp_path / "plugins"


def test_guild_scope_requires_guild_id(tmp_path: Path) -> None:
    config_path = _write(
        tmp_path / "tomte.toml",
        '[discord]\nregistration_scope = "guild"\n',
    )

    with pytest.raises(ConfigError, match="guild_id is required"):
        load_settings(config_path)


def test_invalid_timeout_and_missing_file(tmp_path: Path) -> None:
    config_path = _write(tmp_path / "tomte.toml", "[addons]\nload_timeout = 0\n")

    with pytest.raises(ConfigError, match="load_timeout"):
        load_settings(config_path)
    with pytest.raises(ConfigError, match="Missing config file"):
        load_settings(tmp_path / "absent.toml")
    assert load_settings_if_exists(tmp_path / "absent.toml") is None


def test_environment_overrides_file(monkeypatch, tmp_path: Path) -> None:
    config_path = _write(tmp_path / "tomte.toml", "[discord]\nclient_id = 1\n")
    monkeypatch.setenv("TOMTE__DISCORD__CLIENT_ID", "99")

    settings, _ = load_settings(config_path)

    assert settings.discord.client_id == 99


def test_env_only_settings_when_no_file(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TOMTE__DISCORD__TOKEN", "abc")
    monkeypatch.setenv("TOMTE__DISCORD__CLIENT_ID", "7")

    settings, path = load_settings_or_env(tmp_path / "absent.toml")

    assert path is None
    assert require_discord(settings) == ("abc", 7)


def test_require_discord_reports_missing_values() -> None:
    with pytest.raises(ConfigError, match="token"):
        require_discord(TomteSettings.model_validate({}))
    with pytest.raises(ConfigError, match="client id"):
        require_discord(TomteSettings.model_validate({"discord": {"token": "t"}}))
