from __future__ import annotations

from pathlib import Path

HOME_CONFIG_PATH = Path.home() / ".tomte" / "tomte.toml"
DESCRIPTOR_FILENAME = "addon.info"


class ConfigError(RuntimeError):
    pass
