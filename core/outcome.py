"""
Outcome of a best-effort step.

Some steps (WAL checkpoint before a backup, schema diff before a migration,
a scheduled backup cycle) are allowed to fail without aborting their caller.
They return a StepOutcome instead of hiding the failure in an empty except
block, so the swallowed error is logged and visible to callers and tests.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional
import enum
import logging


class OutcomeStatus(str, enum.Enum):
    OK = "ok"
    SKIPPED = "skipped"  # failed, but non-fatal


@dataclass
class StepOutcome:
    step: str
    status: OutcomeStatus
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.OK

    @classmethod
    def success(cls, step: str, value: Any = None) -> "StepOutcome":
        return cls(step=step, status=OutcomeStatus.OK, value=value)

    @classmethod
    def skipped(cls, step: str, error: Exception) -> "StepOutcome":
        return cls(
            step=step,
            status=OutcomeStatus.SKIPPED,
            error=f"{type(error).__name__}: {error}",
        )


async def best_effort(
    step: str,
    func: Callable[[], Awaitable[Any]],
    logger: logging.Logger,
) -> StepOutcome:
    """Run ``func``; on any exception log a warning and return a skipped outcome."""
    try:
        value = await func()
    except Exception as e:
        outcome = StepOutcome.skipped(step, e)
        logger.warning(f"Non-fatal step '{step}' failed: {outcome.error}")
        return outcome
    return StepOutcome.success(step, value)
