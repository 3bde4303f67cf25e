"""Configuration management for cmdguard.

Loads CLI settings from ~/.config/cmdguard/config.cfg, falling back to a .env
file in the working directory. CMDGUARD_* environment variables override both.
The rule tables themselves are never configurable.
"""

import configparser
from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Dict, Optional

from dotenv import dotenv_values

from .decomposer import MAX_DEPTH

# Default location for user configuration.
CONFIG_PATH = Path.home() / ".config" / "cmdguard" / "config.cfg"
ENV_PREFIX = "CMDGUARD_"
SETTING_KEYS = ("log_level", "max_depth", "color")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class GuardSettings:
    log_level: str = "WARNING"
    max_depth: int = MAX_DEPTH
    color: bool = True

    @property
    def numeric_log_level(self) -> int:
        return getattr(logging, self.log_level)


def load_raw_config(path: Path = CONFIG_PATH, env_path: Optional[Path] = None) -> Dict[str, str]:
    """
    Load configuration values with lowercase keys.

    The config file wins over the .env fallback; environment variables win
    over both.

    Raises:
        ValueError: If the config file exists but cannot be parsed
    """
    data: Dict[str, str] = {}
    env_path = env_path if env_path is not None else Path.cwd() / ".env"

    if path.exists():
        cfg = configparser.ConfigParser()
        try:
            cfg.read(path)
        except configparser.Error as e:
            raise ValueError(f"Could not read configuration from {path}: {e}") from e
        data.update({k.lower(): v for k, v in cfg["DEFAULT"].items()})
    elif env_path.exists():
        for key, value in dotenv_values(env_path).items():
            key = key.lower()
            if key.startswith(ENV_PREFIX.lower()):
                key = key[len(ENV_PREFIX):]
            if value is not None:
                data[key] = value

    for key in SETTING_KEYS:
        value = os.environ.get(ENV_PREFIX + key.upper())
        if value is not None and value.strip() != "":
            data[key] = value

    return data


def _get_bool(raw: Dict[str, str], key: str, default: bool = False) -> bool:
    value = raw.get(key)
    if isinstance(value, bool):
        return value
    if value is None or str(value).strip() == "":
        return default
    return str(value).strip().lower() in {"1", "true", "yes", "y", "on"}


def get_guard_settings(raw: Optional[Dict[str, str]] = None) -> GuardSettings:
    """
    Build GuardSettings from raw configuration values.
    Raises ValueError on an unknown log level or a non-positive max_depth.
    """
    raw = load_raw_config() if raw is None else raw

    log_level = str(raw.get("log_level", "WARNING") or "WARNING").strip().upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"Invalid log_level '{log_level}'. Expected one of: {', '.join(LOG_LEVELS)}")

    try:
        max_depth = int(str(raw.get("max_depth", MAX_DEPTH) or MAX_DEPTH).strip())
    except ValueError:
        raise ValueError(f"Invalid max_depth '{raw.get('max_depth')}'. Expected a positive integer.") from None
    if max_depth < 1:
        raise ValueError(f"Invalid max_depth '{max_depth}'. Expected a positive integer.")

    return GuardSettings(
        log_level=log_level,
        max_depth=max_depth,
        color=_get_bool(raw, "color", True),
    )
