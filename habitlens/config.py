"""Application configuration management."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from habitlens.models import AppConfig, ReportPeriod

log = logging.getLogger(__name__)

_CONFIG_DIR = Path.home() / ".config" / "habitlens"
_DATA_DIR = Path.home() / ".local" / "share" / "habitlens"

_CONFIG_FILE = _CONFIG_DIR / "config.json"

_DEFAULT_DATA_NAME = "habits.json"


def load_config() -> AppConfig:
    """Load config from disk, returning defaults if none exists."""
    if _CONFIG_FILE.exists():
        try:
            data = json.loads(_CONFIG_FILE.read_text())
            return AppConfig(**data)
        except (json.JSONDecodeError, TypeError, ValidationError):
            log.warning("Ignoring unreadable config file %s", _CONFIG_FILE, exc_info=True)
    return AppConfig()


def save_config(config: AppConfig) -> Path:
    """Write config to disk. Returns the config file path."""
    _CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    _CONFIG_FILE.write_text(config.model_dump_json(indent=2))
    return _CONFIG_FILE


def get_data_path() -> Path:
    """Resolve the dataset path from config (or default)."""
    config = load_config()
    if config.data_path is not None:
        return Path(config.data_path)
    return _DATA_DIR / _DEFAULT_DATA_NAME


def set_data_path(path: str) -> AppConfig:
    """Point the reports at a different dataset file and save config."""
    resolved = Path(path).expanduser().resolve()
    # Ensure it ends with a filename
    if resolved.is_dir():
        resolved = resolved / _DEFAULT_DATA_NAME
    config = load_config()
    config.data_path = str(resolved)
    save_config(config)
    return config


def set_default_period(period: ReportPeriod) -> AppConfig:
    """Change the period used when a report does not name one."""
    if period == ReportPeriod.CUSTOM:
        raise ValueError("the default period must be day, week or month")
    config = load_config()
    config.default_period = period
    save_config(config)
    return config


def reset_data_path() -> AppConfig:
    """Reset to the default local dataset path."""
    config = load_config()
    config.data_path = None
    save_config(config)
    return config
