"""Error types surfaced to the process boundary."""

from __future__ import annotations


class DevtoFeedError(Exception):
    """Base class for fatal errors; ``exit_code`` is used by the CLI."""

    exit_code: int = 1


class ConfigError(DevtoFeedError):
    exit_code = 2


class FetchError(DevtoFeedError):
    exit_code = 3


class StoreError(DevtoFeedError):
    exit_code = 4


class StoreReadError(StoreError):
    """The persisted state exists but cannot be parsed."""


class StoreWriteError(StoreError):
    """The state file (or its directory) could not be written."""


class RenderError(DevtoFeedError):
    exit_code = 5


__all__ = [
    "ConfigError",
    "DevtoFeedError",
    "FetchError",
    "RenderError",
    "StoreError",
    "StoreReadError",
    "StoreWriteError",
]
