"""
Tests for best-effort steps: failures are logged and reported, never raised
"""

import logging
import pytest
from core.outcome import OutcomeStatus, StepOutcome, best_effort

logger = logging.getLogger("tests.outcome")


@pytest.mark.asyncio
async def test_best_effort_success_keeps_value():
    async def step():
        return 42

    outcome = await best_effort("answer", step, logger)

    assert outcome.ok
    assert outcome.status == OutcomeStatus.OK
    assert outcome.value == 42
    assert outcome.error is None


@pytest.mark.asyncio
async def test_best_effort_failure_is_logged_and_skipped(caplog):
    async def step():
        raise RuntimeError("disk on fire")

    with caplog.at_level(logging.WARNING, logger="tests.outcome"):
        outcome = await best_effort("wal_checkpoint", step, logger)

    assert not outcome.ok
    assert outcome.status == OutcomeStatus.SKIPPED
    assert outcome.step == "wal_checkpoint"
    assert outcome.error == "RuntimeError: disk on fire"
    assert "wal_checkpoint" in caplog.text


def test_skipped_constructor():
    outcome = StepOutcome.skipped("schema_diff", ValueError("bad"))
    assert outcome.error == "ValueError: bad"
    assert outcome.value is None
