"""Host adapter around the apply orchestrator.

apply() only returns an ApplyResult. This module decides how results are
logged and which exit code the process ends with:

    0  converged, applied, or drift found during a dry run
    1  the run failed (cause chain is logged line by line)
    2  the configuration itself was invalid

Configuration scripts usually end with:

    if __name__ == "__main__":
        realize.main.run(configuration)
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import NoReturn

from .apply import ApplyOutcome, ApplyResult, Configuration, apply
from .config import Config, ConfigurationError, LogFormat

__version__ = "0.1.0"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIGURATION_ERROR = 2

# Handler installed by setup_logging, replaced on repeated calls
_handler: logging.Handler | None = None

# Attributes every LogRecord has; anything else was passed via extra=
_RECORD_ATTRIBUTES = frozenset(
    (
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    )
)


def _record_extras(record: logging.LogRecord) -> dict[str, object]:
    return {
        key: value for key, value in record.__dict__.items() if key not in _RECORD_ATTRIBUTES
    }


class JsonFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        log_data.update(_record_extras(record))

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Compact single-line format with key=value extras, for terminals."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
        line = f"{timestamp} {record.levelname[:4]} {record.getMessage()}"
        extras = _record_extras(record)
        if extras:
            line += " " + ", ".join(f"{key}={value}" for key, value in extras.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(config: Config) -> None:
    """Configure the root logger for a run; output goes to stderr."""
    handler = logging.StreamHandler(sys.stderr)
    if config.log_format == LogFormat.JSON:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(TextFormatter())

    global _handler
    root_logger = logging.getLogger()
    if _handler is not None:
        root_logger.removeHandler(_handler)
    _handler = handler
    root_logger.addHandler(handler)
    root_logger.setLevel(config.log_level_number)


def log_result(result: ApplyResult, logger: logging.Logger) -> None:
    """Log the outcome of a run; failures are logged as an ordered cause chain."""
    if result.conflicts:
        logger.warning(
            "Configuration contains duplicate declarations",
            extra={"conflicts": len(result.conflicts)},
        )

    if result.outcome != ApplyOutcome.FAILED:
        logger.info(
            "Run finished",
            extra={
                "outcome": result.outcome.value,
                "resources": result.resources,
                "duration_seconds": round(result.duration_seconds, 3),
            },
        )
        return

    for i, message in enumerate(result.cause_chain):
        if i == 0:
            logger.error("%s", message)
        else:
            logger.error(" → %s", message)


def exit_code(result: ApplyResult) -> int:
    """Map an ApplyResult to a process exit code."""
    if result.success:
        return EXIT_OK
    return EXIT_FAILED


def main(configure: Configuration, config: Config | None = None) -> int:
    """Run a configuration procedure once and return the exit code.

    Args:
        configure: Procedure declaring resources on a Reality.
        config: Run configuration; loaded from the environment when omitted.
    """
    if config is None:
        try:
            config = Config.from_env()
        except ConfigurationError as e:
            setup_logging(Config())
            logging.getLogger(__name__).error("Configuration error", extra={"error": str(e)})
            return EXIT_CONFIGURATION_ERROR

    setup_logging(config)
    logger = logging.getLogger("realize")
    logger.info(
        "Starting realize",
        extra={"realize_version": __version__, "dry_run": config.dry_run},
    )

    result = apply(configure, config, log=logger)
    log_result(result, logger)
    return exit_code(result)


def run(configure: Configuration) -> NoReturn:
    """Entry point for configuration scripts; exits the process."""
    sys.exit(main(configure))
