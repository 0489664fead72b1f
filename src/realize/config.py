"""Run configuration with validation.

Configuration is validated when it is constructed, so a bad environment is
reported before any resource is declared or touched.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum


class LogFormat(str, Enum):
    """Supported log output formats."""

    TEXT = "text"
    JSON = "json"


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Configuration constants with documented bounds
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = LogFormat.TEXT

# Implicit prerequisite chains are simple upward chains (a path's parents),
# so a deep chain means a resource kind is misbehaving. Each level costs two
# interpreter frames, so the upper bound stays well below the recursion limit
DEFAULT_MAX_PREREQUISITE_DEPTH = 128
MIN_MAX_PREREQUISITE_DEPTH = 1
MAX_MAX_PREREQUISITE_DEPTH = 256

# Declaration manifests are small YAML documents
MAX_MANIFEST_FILE_SIZE_BYTES = 1024 * 1024  # 1MB max manifest file

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Config:
    """Configuration for a single apply run.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing mid-run.
    """

    log_level: str = DEFAULT_LOG_LEVEL
    log_format: LogFormat = DEFAULT_LOG_FORMAT

    # Only verify; report drift without realizing anything
    dry_run: bool = False

    max_prerequisite_depth: int = DEFAULT_MAX_PREREQUISITE_DEPTH

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(
                f"REALIZE_LOG_LEVEL must be one of {list(VALID_LOG_LEVELS)}: {self.log_level}"
            )

        if not isinstance(self.log_format, LogFormat):
            errors.append(f"REALIZE_LOG_FORMAT must be a LogFormat: {self.log_format!r}")

        if not (
            MIN_MAX_PREREQUISITE_DEPTH
            <= self.max_prerequisite_depth
            <= MAX_MAX_PREREQUISITE_DEPTH
        ):
            errors.append(
                f"REALIZE_MAX_PREREQUISITE_DEPTH must be between {MIN_MAX_PREREQUISITE_DEPTH} "
                f"and {MAX_MAX_PREREQUISITE_DEPTH}"
            )

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @property
    def log_level_number(self) -> int:
        """The numeric logging level for log_level."""
        return logging.getLevelName(self.log_level.upper())

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            REALIZE_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL (default: INFO)
            REALIZE_LOG_FORMAT: text or json (default: text)
            REALIZE_DRY_RUN: If "true", only verify and report drift (default: false)
            REALIZE_MAX_PREREQUISITE_DEPTH: Longest implicit prerequisite chain
                allowed before declaration fails (default: 128)
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        def get_format(value: str | None) -> LogFormat:
            if not value:
                return DEFAULT_LOG_FORMAT
            try:
                return LogFormat(value.lower())
            except ValueError as e:
                valid = [f.value for f in LogFormat]
                raise ConfigurationError(
                    f"REALIZE_LOG_FORMAT must be one of {valid}: {value}"
                ) from e

        return cls(
            log_level=os.environ.get("REALIZE_LOG_LEVEL", DEFAULT_LOG_LEVEL),
            log_format=get_format(os.environ.get("REALIZE_LOG_FORMAT")),
            dry_run=get_bool("REALIZE_DRY_RUN", False),
            max_prerequisite_depth=get_int(
                "REALIZE_MAX_PREREQUISITE_DEPTH", DEFAULT_MAX_PREREQUISITE_DEPTH
            ),
        )
