"""outcome_of(): reading terminal outcomes."""

from __future__ import annotations

import asyncio

import pytest

from aiocombine import Failure, Success, TaskPendingError, outcome_of
from tests.helpers import never, rejected, resolved

pytestmark = pytest.mark.unit


@pytest.mark.asyncio
async def test_success_outcome_is_idempotent() -> None:
    fut = resolved(["payload"])

    first = outcome_of(fut)
    second = outcome_of(fut)

    assert first == second == Success(["payload"])
    assert first.value is second.value


@pytest.mark.asyncio
async def test_failure_outcome_is_idempotent() -> None:
    err = ValueError("reason")
    fut = rejected(err)

    assert outcome_of(fut) == outcome_of(fut) == Failure(err)


@pytest.mark.asyncio
async def test_cancelled_future_reads_as_failure() -> None:
    fut = never()
    fut.cancel()

    outcome = outcome_of(fut)

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, asyncio.CancelledError)


@pytest.mark.asyncio
async def test_pending_future_raises_with_hint() -> None:
    with pytest.raises(TaskPendingError) as excinfo:
        outcome_of(never())

    assert excinfo.value.hint
    assert "Await the task" in str(excinfo.value)


def test_outcomes_are_frozen() -> None:
    outcome = Success(1)

    with pytest.raises(AttributeError):
        outcome.value = 2  # type: ignore[misc]
