"""Configuration utilities for the DEV.to high-reactions feed."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigError

LOGGER = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(os.getenv("DEVTO_FEED_DATA_DIR", "data"))
DEFAULT_STATE_FILE = DEFAULT_DATA_DIR / "state.json"
DEFAULT_OUTPUT_DIR = Path("docs")

# Keys that must be at least 1 for the API query to make sense.
_POSITIVE_KEYS = {"lookback_days", "per_page", "max_pages"}


@dataclass(frozen=True)
class Config:
    """Runtime configuration values for one feed build."""

    site_title: str = "DEV.to high reactions"
    site_description: str = "Popular DEV.to articles, ranked by reactions."
    site_url: str = ""
    feed_path: str = "feed.xml"
    lookback_days: int = 7
    per_page: int = 100
    max_pages: int = 3
    min_reactions: int = 50
    max_stored_days: int = 30
    max_stored_items: int = 500
    max_feed_entries: int = 50


@dataclass(frozen=True)
class Paths:
    """Files read and written by one run."""

    state: Path = DEFAULT_STATE_FILE
    out: Path = DEFAULT_OUTPUT_DIR / "feed.xml"
    index: Path = DEFAULT_OUTPUT_DIR / "index.html"
    last_build: Path = DEFAULT_DATA_DIR / "last_build.txt"


def default_config_path() -> Optional[Path]:
    value = os.getenv("DEVTO_FEED_CONFIG")
    return Path(value) if value else None


def _coerce(name: str, expected: type, value: Any) -> Any:
    if expected is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"Config key {name!r} must be an integer, got {value!r}")
        minimum = 1 if name in _POSITIVE_KEYS else 0
        if value < minimum:
            raise ConfigError(f"Config key {name!r} must be >= {minimum}, got {value}")
        return value
    if not isinstance(value, str):
        raise ConfigError(f"Config key {name!r} must be a string, got {value!r}")
    return value


def parse_config(data: Dict[str, Any]) -> Config:
    """Validate a decoded config mapping and build a :class:`Config`."""

    types = {item.name: (int if item.type in ("int", int) else str) for item in fields(Config)}
    values = {}
    for name, value in data.items():
        if name not in types:
            LOGGER.warning("Ignoring unknown config key %r", name)
            continue
        values[name] = _coerce(name, types[name], value)
    return Config(**values)


def load_config(path: Optional[Path] = None) -> Config:
    """Load configuration from a TOML file, falling back to ``DEVTO_FEED_CONFIG``."""

    path = path or default_config_path()
    if path is None:
        raise ConfigError("No config file given (use --config or DEVTO_FEED_CONFIG)")

    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except OSError as exc:
        raise ConfigError(f"Could not read config file {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Could not parse config file {path}: {exc}") from exc

    config = parse_config(data)
    LOGGER.debug("Loaded config from %s: %s", path, config)
    return config
