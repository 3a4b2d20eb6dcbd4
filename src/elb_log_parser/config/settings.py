"""
Application settings and configuration management.

Supports loading from:
1. A YAML settings file (elb-log-parser.yaml)
2. Environment variables (fallback)

Command-line flags are applied on top with Settings.with_overrides().
"""

import logging
import os
from dataclasses import dataclass, field, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DIALECTS = ("alb", "classic-lb")
COLOR_MODES = ("auto", "always", "never")

# Default config file path (relative to the working directory)
DEFAULT_CONFIG_PATH = Path("elb-log-parser.yaml")


def default_worker_count() -> int:
    """Hardware parallelism, at least one."""
    return os.cpu_count() or 1


@dataclass
class Settings:
    """
    Runtime settings for a parsing run.

    Example YAML:
        type: alb
        skip_parse_errors: false
        pipeline:
          workers: 8
          output_queue_size: 0
        reporting:
          color: auto
    """

    dialect: str = "alb"
    skip_parse_errors: bool = False

    # Pipeline
    workers: int = field(default_factory=default_worker_count)
    output_queue_size: int = 0  # 0 = unbounded

    # Reporting
    color: str = "auto"

    def validate(self) -> list[str]:
        """Validate settings values. Returns list of errors."""
        errors = []

        if self.dialect not in DIALECTS:
            errors.append(
                f"type must be one of {', '.join(DIALECTS)}, got {self.dialect!r}"
            )
        if self.workers < 1:
            errors.append(f"workers must be >= 1, got {self.workers}")
        if self.output_queue_size < 0:
            errors.append(
                f"output_queue_size must be >= 0, got {self.output_queue_size}"
            )
        if self.color not in COLOR_MODES:
            errors.append(
                f"color must be one of {', '.join(COLOR_MODES)}, got {self.color!r}"
            )

        return errors

    def ensure_valid(self) -> "Settings":
        """
        Return self if valid.

        Raises:
            ConfigurationError: If validate() reports any error
        """
        errors = self.validate()
        if errors:
            raise ConfigurationError(errors)
        return self

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        if "dialect" in changes:
            changes["dialect"] = _normalize_dialect(changes["dialect"])
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization."""
        return {
            "type": self.dialect,
            "skip_parse_errors": self.skip_parse_errors,
            "pipeline": {
                "workers": self.workers,
                "output_queue_size": self.output_queue_size,
            },
            "reporting": {"color": self.color},
        }

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "Settings":
        """Create Settings from a configuration dictionary (e.g., parsed YAML)."""
        pipeline = config.get("pipeline") or {}
        reporting = config.get("reporting") or {}

        return cls(
            dialect=_normalize_dialect(config.get("type", "alb")),
            skip_parse_errors=_parse_bool(config.get("skip_parse_errors", False)),
            workers=int(pipeline.get("workers") or default_worker_count()),
            output_queue_size=int(pipeline.get("output_queue_size", 0)),
            color=str(reporting.get("color", "auto")).lower(),
        )

    @classmethod
    def from_env(cls) -> "Settings":
        """Create Settings from environment variables."""

        def safe_int(key: str, default: int) -> int:
            """Safely parse int from env var, using default on error."""
            try:
                return int(os.environ.get(key, str(default)))
            except ValueError:
                logger.warning(f"Ignoring invalid integer in ${key}")
                return default

        def safe_bool(key: str, default: bool) -> bool:
            """Safely parse bool from env var."""
            value = os.environ.get(key, str(default)).lower()
            return value in ("1", "true", "yes", "on")

        return cls(
            dialect=_normalize_dialect(os.environ.get("ELB_LOG_PARSER_TYPE", "alb")),
            skip_parse_errors=safe_bool("ELB_LOG_PARSER_SKIP_PARSE_ERRORS", False),
            workers=safe_int("ELB_LOG_PARSER_WORKERS", default_worker_count()),
            output_queue_size=safe_int("ELB_LOG_PARSER_OUTPUT_QUEUE_SIZE", 0),
            color=os.environ.get("ELB_LOG_PARSER_COLOR", "auto").lower(),
        )


def _parse_bool(value: Any) -> bool:
    """Accept YAML booleans as well as quoted strings such as "false"."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _normalize_dialect(name: str) -> str:
    return str(name).strip().lower().replace("_", "-")


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """
    Load settings from a YAML file, falling back to environment variables.

    An explicitly given path must exist; the default path is optional.

    Raises:
        ConfigurationError: If the file is missing, unreadable or malformed
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    if not path.exists():
        if config_path:
            raise ConfigurationError([f"Config file not found: {path}"])
        return Settings.from_env()

    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError([f"Failed to load config from {path}: {e}"]) from e

    if not isinstance(config, dict):
        raise ConfigurationError([f"Config file {path} must contain a mapping"])

    try:
        settings = Settings.from_dict(config)
    except (TypeError, ValueError) as e:
        raise ConfigurationError([f"Invalid value in {path}: {e}"]) from e

    logger.debug(f"Loaded settings from {path}: {settings.to_dict()}")
    return settings


@lru_cache
def get_settings(config_path: Optional[str] = None) -> Settings:
    """Get cached settings instance (see load_settings)."""
    return load_settings(Path(config_path) if config_path else None)


def clear_settings_cache() -> None:
    """Clear the cached settings (useful for testing)."""
    get_settings.cache_clear()
