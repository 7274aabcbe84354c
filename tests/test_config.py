# pyright: standard
import json
from pathlib import Path

import pytest

from patchvault.config import Settings, default_db_path, load_settings
from patchvault.consts import DEFAULT_WINDOW
from patchvault.exceptions import ConfigurationError


def _write_config(tmp_path: Path, values: dict[str, object]) -> Path:
    config_file = tmp_path / "config" / "patchvault" / "config.json"
    config_file.parent.mkdir(parents=True, exist_ok=True)
    _ = config_file.write_text(json.dumps(values))
    return config_file


def test_defaults(tmp_path: Path) -> None:
    # GIVEN no config file and no environment overrides
    settings = load_settings()

    # THEN built-in defaults apply and the database lives under XDG_DATA_HOME
    assert settings.window == DEFAULT_WINDOW
    assert settings.compress is True
    assert settings.cache_max_entries is None
    assert settings.log_level == "WARNING"
    assert settings.db_path == tmp_path / "data" / "patchvault" / "patchvault.db"
    assert default_db_path() == settings.db_path


def test_config_file_values(tmp_path: Path) -> None:
    _ = _write_config(tmp_path, {"db_path": str(tmp_path / "vault.db"), "window": 4, "compress": False})

    settings = load_settings()

    assert settings.db_path == tmp_path / "vault.db"
    assert settings.window == 4
    assert settings.compress is False


def test_environment_overrides_config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # GIVEN a config file and conflicting environment variables
    _ = _write_config(tmp_path, {"window": 4, "compress": True})
    monkeypatch.setenv("PATCHVAULT_WINDOW", "8")
    monkeypatch.setenv("PATCHVAULT_COMPRESS", "false")
    monkeypatch.setenv("PATCHVAULT_CACHE_MAX_ENTRIES", "32")
    monkeypatch.setenv("PATCHVAULT_DB", str(tmp_path / "env.db"))

    settings = load_settings()

    # THEN the environment wins, with strings coerced to the setting types
    assert settings.window == 8
    assert settings.compress is False
    assert settings.cache_max_entries == 32
    assert settings.db_path == tmp_path / "env.db"


def test_explicit_overrides_win_and_none_falls_through(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PATCHVAULT_WINDOW", "8")
    monkeypatch.setenv("PATCHVAULT_LOG_LEVEL", "info")

    settings = load_settings({"window": 2, "log_level": None})

    assert settings.window == 2
    assert settings.log_level == "info"


def test_invalid_json_in_config_file(tmp_path: Path) -> None:
    config_file = _write_config(tmp_path, {})
    _ = config_file.write_text("{not json")

    with pytest.raises(ConfigurationError, match="Invalid config file"):
        _ = load_settings()


def test_wrongly_typed_config_value(tmp_path: Path) -> None:
    _ = _write_config(tmp_path, {"window": "many"})

    with pytest.raises(ConfigurationError):
        _ = load_settings()


def test_invalid_environment_value(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PATCHVAULT_COMPRESS", "sometimes")

    with pytest.raises(ConfigurationError, match="Invalid configuration"):
        _ = load_settings()


@pytest.mark.parametrize(
    "values",
    [
        {"window": 0},
        {"cache_max_entries": 0},
        {"log_level": "LOUD"},
    ],
)
def test_out_of_range_values_are_rejected(values: dict[str, object]) -> None:
    with pytest.raises(ConfigurationError):
        _ = load_settings(values)


def test_settings_validate_on_construction(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        _ = Settings(db_path=tmp_path / "x.db", window=-1)
