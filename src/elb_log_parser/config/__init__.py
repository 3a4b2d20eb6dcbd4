"""Configuration module."""

from .settings import (
    COLOR_MODES,
    DEFAULT_CONFIG_PATH,
    DIALECTS,
    Settings,
    clear_settings_cache,
    default_worker_count,
    get_settings,
    load_settings,
)

__all__ = [
    "COLOR_MODES",
    "DEFAULT_CONFIG_PATH",
    "DIALECTS",
    "Settings",
    "clear_settings_cache",
    "default_worker_count",
    "get_settings",
    "load_settings",
]
