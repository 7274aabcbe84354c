import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import TypedDict

from msgspec import Struct
from pydantic import TypeAdapter, ValidationError

from patchvault.consts import DB_FILE_NAME, DEFAULT_WINDOW, ENV_PREFIX
from patchvault.exceptions import ConfigurationError


class ConfigValues(TypedDict, total=False):
    db_path: str
    window: int
    compress: bool
    cache_max_entries: int | None
    log_level: str


_CONFIG_ADAPTER: TypeAdapter[ConfigValues] = TypeAdapter(ConfigValues)


class Settings(Struct, frozen=True):
    db_path: Path
    window: int = DEFAULT_WINDOW
    compress: bool = True
    cache_max_entries: int | None = None
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.window < 1:
            raise ConfigurationError(f"window must be at least 1, got {self.window}.")
        if self.cache_max_entries is not None and self.cache_max_entries < 1:
            raise ConfigurationError(f"cache_max_entries must be positive, got {self.cache_max_entries}.")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigurationError(f"Unknown log level '{self.log_level}'.")


# Use XDG_CONFIG_HOME or default to ~/.config/patchvault
def _get_config_dir() -> Path:
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg_config) if xdg_config else Path.home() / ".config"
    return base / "patchvault"


def _get_config_file() -> Path:
    return _get_config_dir() / "config.json"


def _get_data_dir() -> Path:
    xdg_data = os.environ.get("XDG_DATA_HOME")
    base = Path(xdg_data) if xdg_data else Path.home() / ".local" / "share"
    return base / "patchvault"


def default_db_path() -> Path:
    return _get_data_dir() / DB_FILE_NAME


def _load_config_file() -> ConfigValues:
    config_file = _get_config_file()
    if not config_file.is_file():
        return {}

    try:
        return _CONFIG_ADAPTER.validate_json(config_file.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config file {config_file}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Could not read config file {config_file}: {e}") from e


def _load_env() -> dict[str, str]:
    """Collects PATCHVAULT_* variables that name a known setting."""
    known = ConfigValues.__annotations__.keys()
    values: dict[str, str] = {}
    for key in known:
        if (raw := os.environ.get(ENV_PREFIX + key.upper())) is not None:
            values[key] = raw
    # PATCHVAULT_DB is the short, documented spelling of PATCHVAULT_DB_PATH
    if (db := os.environ.get(ENV_PREFIX + "DB")) is not None:
        values["db_path"] = db
    return values


def load_settings(overrides: Mapping[str, object] | None = None) -> Settings:
    """
    Resolves settings from defaults, the config file, environment and explicit overrides (later wins).

    `None` values in `overrides` are ignored so unset CLI options fall through.
    """
    merged: dict[str, object] = {"db_path": str(default_db_path())}
    merged.update(_load_config_file())
    merged.update(_load_env())
    if overrides:
        merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        values = _CONFIG_ADAPTER.validate_python(merged)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    return Settings(
        db_path=Path(values.get("db_path", str(default_db_path()))).expanduser(),
        window=values.get("window", DEFAULT_WINDOW),
        compress=values.get("compress", True),
        cache_max_entries=values.get("cache_max_entries"),
        log_level=values.get("log_level", "WARNING"),
    )
