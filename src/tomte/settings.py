from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import TomlConfigSettingsSource

from .config import HOME_CONFIG_PATH, ConfigError

DEFAULT_LOAD_TIMEOUT = 30.0


class DiscordSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    token: SecretStr | None = None
    client_id: int | None = None
    guild_id: int | None = None
    registration_scope: Literal["global", "guild"] = "global"
    clear_commands: bool = False

    @field_validator("token", mode="before")
    @classmethod
    def _validate_token(cls, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("token must be a string")
        return value.strip() or None

    @field_validator("client_id", "guild_id", mode="before")
    @classmethod
    def _validate_snowflake(cls, value: Any, info) -> Any:
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            raise ValueError(f"{info.field_name} must be an integer")
        if isinstance(value, str):
            cleaned = value.strip()
            if not cleaned.isdigit():
                raise ValueError(f"{info.field_name} must be an integer")
            return int(cleaned)
        if not isinstance(value, int):
            raise ValueError(f"{info.field_name} must be an integer")
        return value

    @field_validator("registration_scope", mode="before")
    @classmethod
    def _normalize_scope(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def _require_guild_for_guild_scope(self) -> DiscordSettings:
        if self.registration_scope == "guild" and self.guild_id is None:
            raise ValueError(
                'guild_id is required when registration_scope is "guild"'
            )
        return self


class AddonsSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    root: Path = Path("addons")
    load_timeout: float = DEFAULT_LOAD_TIMEOUT

    @field_validator("load_timeout")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("load_timeout must be positive")
        return value


class TomteSettings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        env_prefix="TOMTE__",
        env_nested_delimiter="__",
    )

    debug: bool = False
    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    addons: AddonsSettings = Field(default_factory=AddonsSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    def addons_root(self, *, config_path: Path | None) -> Path:
        root = self.addons.root.expanduser()
        if not root.is_absolute() and config_path is not None:
            root = config_path.parent / root
        return root


def load_settings(path: str | Path | None = None) -> tuple[TomteSettings, Path]:
    cfg_path = _resolve_config_path(path)
    _ensure_config_file(cfg_path)
    return _load_settings_from_path(cfg_path), cfg_path


def load_settings_if_exists(
    path: str | Path | None = None,
) -> tuple[TomteSettings, Path] | None:
    cfg_path = _resolve_config_path(path)
    if cfg_path.exists():
        if not cfg_path.is_file():
            raise ConfigError(
                f"Config path {cfg_path} exists but is not a file."
            ) from None
        return _load_settings_from_path(cfg_path), cfg_path
    return None


def load_settings_or_env(
    path: str | Path | None = None,
) -> tuple[TomteSettings, Path | None]:
    loaded = load_settings_if_exists(path)
    if loaded is not None:
        return loaded
    try:
        return TomteSettings(), None
    except ValidationError as exc:
        raise ConfigError(f"Invalid environment configuration: {exc}") from exc


def require_discord(settings: TomteSettings) -> tuple[str, int]:
    discord_cfg = settings.discord
    if discord_cfg.token is None or not discord_cfg.token.get_secret_value():
        raise ConfigError(
            "Missing Discord token; set [discord].token or TOMTE__DISCORD__TOKEN."
        )
    if discord_cfg.client_id is None:
        raise ConfigError(
            "Missing Discord client id; set [discord].client_id "
            "or TOMTE__DISCORD__CLIENT_ID."
        )
    return discord_cfg.token.get_secret_value(), discord_cfg.client_id


def _resolve_config_path(path: str | Path | None) -> Path:
    return Path(path).expanduser() if path else HOME_CONFIG_PATH


def _ensure_config_file(cfg_path: Path) -> None:
    if cfg_path.exists() and not cfg_path.is_file():
        raise ConfigError(f"Config path {cfg_path} exists but is not a file.") from None
    if not cfg_path.exists():
        raise ConfigError(f"Missing config file {cfg_path}.") from None


def _load_settings_from_path(cfg_path: Path) -> TomteSettings:
    cfg = dict(TomteSettings.model_config)
    cfg["toml_file"] = cfg_path
    Bound = type(
        "TomteSettingsBound",
        (TomteSettings,),
        {"model_config": SettingsConfigDict(**cfg)},
    )
    try:
        return Bound()
    except ValidationError as exc:
        raise ConfigError(f"Invalid config in {cfg_path}: {exc}") from exc
