"""Configuration management for financepro.

Settings live in a small JSON object: the sync endpoint URL, its timeout
and an optional ledger file location. ``FINANCEPRO_SYNC_URL`` overrides the
stored URL.
"""

import json
import os
from pathlib import Path
from typing import Any

from financepro.errors import FormatError

CONFIG_FILENAME = "config.json"

# Ledger filename, stored next to the config
DATA_FILENAME = "data.json"

# Seconds to wait for the sync endpoint
DEFAULT_SYNC_TIMEOUT = 30.0

SYNC_URL_ENV = "FINANCEPRO_SYNC_URL"


def get_config_dir() -> Path:
    """Directory holding config and ledger (``$XDG_CONFIG_HOME/financepro``)."""
    base = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "financepro"


def get_config_path() -> Path:
    """Where the config is written when no path is given."""
    return get_config_dir() / CONFIG_FILENAME


def find_config_file() -> Path | None:
    """Return the first existing config: ./config.json, then the XDG one."""
    candidates = (Path(CONFIG_FILENAME), get_config_path())
    return next((path for path in candidates if path.exists()), None)


def load_json_config(config_path: Path) -> dict[str, Any]:
    """
    Read a config file.

    Raises:
        FormatError: If the file is not JSON or not a JSON object
        OSError: If the file cannot be read
    """
    with open(config_path, encoding="utf-8") as f:
        try:
            config = json.load(f)
        except ValueError as e:
            raise FormatError(f"Invalid config file: {e}", config_path) from e

    if not isinstance(config, dict):
        raise FormatError("Config file must hold a JSON object", config_path)
    return config


def save_json_config(config: dict[str, Any], config_path: Path | None = None) -> Path:
    """Write ``config`` as JSON, creating the directory, and return the path used."""
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)
        f.write("\n")

    return config_path


def load_config(config_path: Path | None = None) -> dict[str, Any] | None:
    """Load the explicit config file, or the first one found.

    Returns None when there is no config file, so every setting falls back
    to its default.
    """
    path = config_path or find_config_file()
    if path is None or not path.exists():
        return None
    return load_json_config(path)


def create_default_config() -> dict[str, Any]:
    """Create a default empty configuration."""
    return {
        "sync_url": None,
        "sync_timeout": DEFAULT_SYNC_TIMEOUT,
        "data_file": None,
    }


def get_sync_url(
    config: dict[str, Any] | None = None,
    override: str | None = None,
) -> str | None:
    """Get the sync endpoint URL.

    Precedence: explicit override, FINANCEPRO_SYNC_URL, config file.

    Args:
        config: Loaded JSON config
        override: Optional URL to use instead of config

    Returns:
        URL string or None if not configured
    """
    if override:
        return override.strip()

    if env_url := os.getenv(SYNC_URL_ENV, "").strip():
        return env_url

    if config:
        if url := (config.get("sync_url") or "").strip():
            return url  # type: ignore[no-any-return]

    return None


def set_sync_url(
    url: str | None,
    config: dict[str, Any] | None = None,
    config_path: Path | None = None,
) -> Path:
    """Store the sync endpoint URL, keeping other settings.

    Args:
        url: New URL, or None/empty to clear it
        config: Currently loaded config (defaults to a fresh one)
        config_path: Where to write (defaults to XDG config location)

    Returns:
        Path where config was saved
    """
    updated = dict(config) if config else create_default_config()
    updated["sync_url"] = (url or "").strip() or None
    return save_json_config(updated, config_path)


def get_sync_timeout(config: dict[str, Any] | None = None) -> float:
    """Get the sync timeout in seconds."""
    if config and config.get("sync_timeout") is not None:
        return float(config["sync_timeout"])
    return DEFAULT_SYNC_TIMEOUT


def get_data_path(
    config: dict[str, Any] | None = None,
    override: Path | None = None,
) -> Path:
    """Get the ledger file path.

    Args:
        config: Loaded JSON config
        override: Explicit path (e.g. from the command line)

    Returns:
        Path of the JSON ledger file
    """
    if override:
        return override

    if config and config.get("data_file"):
        return Path(config["data_file"]).expanduser()

    return get_config_dir() / DATA_FILENAME
