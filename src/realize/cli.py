"""Realize CLI (realize).

Usage:
    realize apply site.yaml             # Converge the system to a manifest
    realize apply mysite.config:main    # ... or to a Python configuration procedure
    realize check site.yaml             # Verify only; exit 3 when drift is found
    realize show site.yaml              # Print the ordered, deduplicated plan
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import Any

import click

from .apply import ApplyOutcome, Configuration, apply
from .config import Config, ConfigurationError, LogFormat
from .main import (
    EXIT_CONFIGURATION_ERROR,
    __version__,
    exit_code,
    log_result,
    main,
    setup_logging,
)
from .manifest import ManifestLoadError, load_configuration
from .reality import Reality

EXIT_DRIFT_DETECTED = 3

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def build_config(
    *,
    dry_run: bool = False,
    log_format: str | None = None,
    log_level: str | None = None,
) -> Config:
    """Build a Config from the environment, overridden by CLI options.

    Raises:
        click.ClickException: If the resulting configuration is invalid.
    """
    try:
        env_config = Config.from_env()
        return Config(
            log_level=log_level or env_config.log_level,
            log_format=LogFormat(log_format) if log_format else env_config.log_format,
            dry_run=dry_run or env_config.dry_run,
            max_prerequisite_depth=env_config.max_prerequisite_depth,
        )
    except ConfigurationError as e:
        exc = click.ClickException(str(e))
        exc.exit_code = EXIT_CONFIGURATION_ERROR
        raise exc from e


def resolve_target(target: str) -> Configuration:
    """Load a configuration procedure, reporting failures as CLI errors."""
    try:
        return load_configuration(target)
    except ManifestLoadError as e:
        raise click.ClickException(str(e)) from e


log_options = [
    click.option(
        "--log-format",
        type=click.Choice([f.value for f in LogFormat]),
        default=None,
        help="Log output format (default: REALIZE_LOG_FORMAT or text).",
    ),
    click.option(
        "--log-level",
        type=click.Choice(LOG_LEVELS, case_sensitive=False),
        default=None,
        help="Minimum log level (default: REALIZE_LOG_LEVEL or INFO).",
    ),
]


def with_log_options(func: Callable[..., Any]) -> Callable[..., Any]:
    for option in reversed(log_options):
        func = option(func)
    return func


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="realize")
def cli() -> None:
    """Realize: converge a system to declared files, directories and symlinks.

    \b
    TARGET is either a YAML manifest (*.yaml / *.yml) or a
    module:function reference to a Python configuration procedure.
    """
    pass


@cli.command("apply")
@click.argument("target")
@click.option("--dry-run", is_flag=True, help="Only verify; report drift without changes.")
@with_log_options
def apply_command(
    target: str, dry_run: bool, log_format: str | None, log_level: str | None
) -> None:
    """Verify TARGET and realize it if the system has drifted."""
    config = build_config(dry_run=dry_run, log_format=log_format, log_level=log_level)
    setup_logging(config)
    configure = resolve_target(target)
    sys.exit(main(configure, config))


@cli.command("check")
@click.argument("target")
@with_log_options
def check_command(target: str, log_format: str | None, log_level: str | None) -> None:
    """Verify TARGET without changing anything; exit 3 when drift is found."""
    config = build_config(dry_run=True, log_format=log_format, log_level=log_level)
    setup_logging(config)
    configure = resolve_target(target)

    logger = logging.getLogger("realize")
    result = apply(configure, config, log=logger)
    log_result(result, logger)

    if result.outcome == ApplyOutcome.DRIFTED:
        click.secho(f"Drift detected ({result.resources} resources declared)", fg="yellow")
        sys.exit(EXIT_DRIFT_DETECTED)
    if result.outcome == ApplyOutcome.CONVERGED:
        click.secho("✓ Everything up to date", fg="green")
    sys.exit(exit_code(result))


@cli.command("show")
@click.argument("target")
def show_command(target: str) -> None:
    """Print the ordered, deduplicated resources TARGET declares, with their keys."""
    configure = resolve_target(target)
    reality = Reality()
    try:
        configure(reality)
    except Exception as e:
        raise click.ClickException(f"Could not declare configuration: {e}") from e

    for index, resource in enumerate(reality, start=1):
        click.echo(f"{index:>4}. {resource.describe()} (key {resource.key()})")
    for conflict in reality.conflicts:
        click.secho(f"warning: {conflict}", fg="yellow", err=True)
    click.echo(f"{len(reality)} resources, {len(reality.conflicts)} conflicts")


if __name__ == "__main__":
    cli()
