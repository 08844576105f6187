"""Configuration utilities for the autoupload CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
from pathlib import Path

from autoupload.client.state import SettingsStore


def get_config_dir() -> Path:
    """Get the configuration directory for autoupload.

    Returns:
        Path to ~/.autoupload.
    """
    return Path.home() / ".autoupload"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def get_state_db_path() -> Path:
    """Get the path to the settings database."""
    return get_config_dir() / "state.db"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_library_path(config: dict[str, str] | None = None) -> Path:
    """Get the photo library path.

    Returns:
        Path to the library folder (configured or default ~/Pictures).
    """
    if config is None:
        config = load_config()
    if config.get("library_path"):
        return Path(config["library_path"]).expanduser().resolve()
    return Path.home() / "Pictures"


def open_store() -> SettingsStore:
    """Open the settings store in the configuration directory."""
    return SettingsStore(get_state_db_path())
