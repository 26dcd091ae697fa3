"""Combinators that build new futures from existing awaitables.

Each call returns a fresh ``asyncio.Future`` on the running loop. Failures
of the inputs, of caller callbacks and of timeouts all surface as the
returned future's exception; nothing is raised at call time except for
invalid arguments. Inputs are never cancelled by these functions.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import timedelta
import logging
import math
from typing import TYPE_CHECKING, Any

from aiocombine.config import current_config
from aiocombine.errors import TaskTimeoutError, as_failure_reason
from aiocombine.guard import SettlementGuard

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

type Duration = float | timedelta


def _as_seconds(duration: Duration) -> float:
    seconds = (
        duration.total_seconds()
        if isinstance(duration, timedelta)
        else float(duration)
    )
    if math.isnan(seconds) or seconds < 0:
        raise ValueError(f"duration must be >= 0 seconds, got {duration!r}")
    return seconds


# --- Join ---


@dataclass(slots=True)
class _JoinState:
    """Pending success values of a two-way join."""

    values: list[Any] = field(default_factory=lambda: [None, None])
    succeeded: int = 0


def combine[T, U, V](
    task1: Awaitable[T],
    task2: Awaitable[U],
    combiner: Callable[[T, U], V],
) -> asyncio.Future[V]:
    """Join two tasks and combine their values.

    The result succeeds with ``combiner(value1, value2)`` once both inputs
    succeed. It fails with the reason of whichever input fails first,
    without waiting for the other. If ``combiner`` raises, the result fails
    with the raised exception. ``combiner`` is called at most once.

    When both inputs have already failed at call time, ``task1``'s reason
    wins: continuations are registered for ``task1`` first.
    """
    guard: SettlementGuard[V] = SettlementGuard.create()
    state = _JoinState()

    def _on_success(slot: int, value: Any) -> None:
        state.values[slot] = value
        state.succeeded += 1
        if state.succeeded == 2:
            first, second = state.values
            guard.settle_success(combiner(first, second))

    guard.attach(task1, lambda value: _on_success(0, value))
    guard.attach(task2, lambda value: _on_success(1, value))
    return guard.future


# --- Observation ---


def handle[T, U](
    task: Awaitable[T],
    fn: Callable[[T | None, BaseException | None], U],
) -> asyncio.Future[U]:
    """Map both outcomes of ``task`` into a new value.

    Calls ``fn(value, None)`` on success or ``fn(None, reason)`` on failure
    (a cancelled task passes its ``CancelledError`` as the reason) and
    succeeds with the return value. If ``fn`` raises, the result fails with
    the raised exception (re-raising a ``CancelledError`` cancels it).
    """
    guard: SettlementGuard[U] = SettlementGuard.create()
    guard.attach(
        task,
        on_success=lambda value: guard.settle_success(fn(value, None)),
        on_failure=lambda reason: guard.settle_success(fn(None, reason)),
    )
    return guard.future


def when_complete[T](
    task: Awaitable[T],
    fn: Callable[[T | None, BaseException | None], object],
) -> asyncio.Future[T]:
    """Observe both outcomes of ``task`` without changing them.

    ``fn`` is called as in ``handle``; its return value is ignored and the
    result settles exactly like ``task``. If ``fn`` raises, the result fails
    with the raised exception instead.
    """
    guard: SettlementGuard[T] = SettlementGuard.create()

    def _on_success(value: T) -> None:
        fn(value, None)
        guard.settle_success(value)

    def _on_failure(reason: BaseException) -> None:
        fn(None, reason)
        guard.settle_failure(reason)

    guard.attach(task, _on_success, _on_failure)
    return guard.future


# --- Timeouts ---


def race_against_timeout[T](
    task: Awaitable[T],
    timeout: Duration,
    on_timeout: Callable[[Callable[[T], bool], Callable[[object], bool]], object],
) -> asyncio.Future[T]:
    """Mirror ``task`` unless ``timeout`` elapses first.

    When the timer wins, ``on_timeout(settle_success, settle_failure)``
    decides the result. If ``on_timeout`` raises, the result fails with the
    raised exception. Whichever source settles first wins; the timer is
    cancelled as soon as the result settles.
    """
    seconds = _as_seconds(timeout)
    guard: SettlementGuard[T] = SettlementGuard.create()
    guard.attach(task)
    guard.arm_timer(
        seconds, lambda: on_timeout(guard.settle_success, guard.settle_failure)
    )
    return guard.future


def reject_on_timeout[T](
    task: Awaitable[T],
    timeout: Duration,
    reason_supplier: Callable[[], object] | None = None,
) -> asyncio.Future[T]:
    """Fail with a timeout reason if ``task`` does not settle in time.

    ``reason_supplier`` is called at most once, only if the timeout wins.
    Its value becomes the failure (non-exceptions are wrapped in
    ``RejectionError``). The default reason is a ``TaskTimeoutError``
    carrying the configured ``timeout_message``.
    """
    message = current_config().timeout_message
    seconds = _as_seconds(timeout)

    def _default_reason() -> object:
        return TaskTimeoutError(message, timeout_s=seconds)

    supplier = reason_supplier or _default_reason
    return race_against_timeout(task, seconds, lambda _, fail: fail(supplier()))


def resolve_on_timeout[T](
    task: Awaitable[T],
    fallback: T,
    timeout: Duration,
) -> asyncio.Future[T]:
    """Succeed with ``fallback`` if ``task`` does not settle in time."""
    return race_against_timeout(task, timeout, lambda succeed, _: succeed(fallback))


# --- Deferred supply ---


def supply[T](
    computation: Callable[[], T],
    delay: Duration | None = None,
) -> asyncio.Future[T]:
    """Run a synchronous computation later and expose its result as a future.

    With no ``delay`` the configured ``supply_delay_s`` applies; zero means
    the next loop iteration. If the computation raises, the result fails
    with the raised exception; a raised ``CancelledError`` cancels the result.
    Cancelling the result before the computation runs prevents it from
    running.
    """
    seconds = current_config().supply_delay_s if delay is None else _as_seconds(delay)
    loop = asyncio.get_running_loop()
    future: asyncio.Future[T] = loop.create_future()

    def _run() -> None:
        if future.done():
            return
        try:
            value = computation()
        except asyncio.CancelledError:
            future.cancel()
            return
        except Exception as exc:
            if not future.done():
                future.set_exception(as_failure_reason(exc))
            return
        if not future.done():
            future.set_result(value)

    scheduled: asyncio.Handle = (
        loop.call_later(seconds, _run) if seconds > 0 else loop.call_soon(_run)
    )
    future.add_done_callback(lambda _: scheduled.cancel())
    logger.debug("Supplying %r after %.3fs", computation, seconds)
    return future
