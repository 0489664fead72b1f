"""Single-pass apply orchestration.

One run is:
1. Build an empty Reality
2. Run the configuration procedure once to declare resources
3. Verify the Reality
4. If anything is not realized (and this is not a dry run), realize once

There is no retry loop and no re-verification after realize; a caller that
wants confirmation runs apply() again, which must then report CONVERGED.

apply() never exits the process or decides how failures are presented. It
returns an ApplyResult and leaves that to the host (see main.py).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from .config import Config
from .errors import ApplyError, cause_chain
from .reality import DuplicateDeclaration, Reality
from .resource import Context

logger = logging.getLogger(__name__)

Configuration = Callable[[Reality], None]


class ApplyOutcome(str, Enum):
    """How a single apply run ended."""

    CONVERGED = "converged"  # Everything already realized, nothing done
    APPLIED = "applied"  # Drift found and realized
    DRIFTED = "drifted"  # Drift found, dry run so nothing realized
    FAILED = "failed"  # Declaration, verify or realize failed


@dataclass
class ApplyResult:
    """Result of a single apply run."""

    outcome: ApplyOutcome = ApplyOutcome.FAILED
    resources: int = 0
    conflicts: list[DuplicateDeclaration] = field(default_factory=list)
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    error: Exception | None = None

    @property
    def duration_seconds(self) -> float:
        """Calculate duration in seconds."""
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def success(self) -> bool:
        """Check if the run finished without error."""
        return self.error is None and self.outcome != ApplyOutcome.FAILED

    @property
    def cause_chain(self) -> list[str]:
        """Error messages from most specific to most general; empty on success."""
        if self.error is None:
            return []
        return cause_chain(self.error)


def apply(
    configure: Configuration,
    config: Config | None = None,
    *,
    log: logging.Logger | None = None,
) -> ApplyResult:
    """Declare, verify and (maybe) realize a configuration.

    Args:
        configure: Procedure that declares resources on the Reality it is given.
        config: Run configuration; defaults are used when omitted.
        log: Logger handed to resources; defaults to this module's logger.

    Returns:
        ApplyResult describing the outcome. Failures are reported through
        ApplyResult.error (an ApplyError chained to its causes), never raised.
    """
    config = config or Config()
    log = log or logger
    ctx = Context(logger=log)
    result = ApplyResult()

    reality = Reality(log=log, max_prerequisite_depth=config.max_prerequisite_depth)

    try:
        try:
            configure(reality)
        except Exception as e:
            raise ApplyError("Could not declare configuration") from e
        finally:
            result.resources = len(reality)
            result.conflicts = reality.conflicts

        log.info(
            "Applying configuration",
            extra={"resources": len(reality), "conflicts": len(result.conflicts)},
        )

        try:
            converged = reality.verify(ctx)
        except Exception as e:
            raise ApplyError("Could not verify configuration") from e

        if converged:
            log.info("Everything up to date, nothing to do")
            result.outcome = ApplyOutcome.CONVERGED
        elif config.dry_run:
            log.info("Drift detected, dry run so nothing was changed")
            result.outcome = ApplyOutcome.DRIFTED
        else:
            try:
                reality.realize(ctx)
            except Exception as e:
                raise ApplyError("Could not apply configuration") from e
            log.info("Configuration applied")
            result.outcome = ApplyOutcome.APPLIED
    except ApplyError as e:
        result.outcome = ApplyOutcome.FAILED
        result.error = e
    finally:
        result.end_time = datetime.now(UTC)

    return result
