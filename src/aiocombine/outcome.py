"""Terminal outcomes of settled tasks.

A settled future is read into a ``Success`` or ``Failure`` value so callers
(and tests) can inspect results without re-raising exceptions.
"""

from __future__ import annotations

import asyncio
import dataclasses

from aiocombine.errors import TaskPendingError


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TSuccess]:
    """A task that settled with a value."""

    value: TSuccess


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[TFailure: BaseException]:
    """A task that settled with a failure reason.

    Cancellation is reported as a ``Failure`` holding ``CancelledError``.
    """

    error: TFailure


type Outcome[T, E: BaseException] = Success[T] | Failure[E]


def outcome_of[T](future: asyncio.Future[T]) -> Success[T] | Failure[BaseException]:
    """Return the terminal outcome of a settled future.

    Reading an outcome also marks the future's exception as retrieved.
    Repeated calls return equal outcomes carrying the same value or
    exception object. A cancelled future yields a fresh ``CancelledError``
    on every call, as asyncio does.

    Raises:
        TaskPendingError: If the future has not settled yet.
    """
    if not future.done():
        raise TaskPendingError
    if future.cancelled():
        try:
            future.result()
        except asyncio.CancelledError as exc:
            return Failure(exc)
    exc = future.exception()
    if exc is not None:
        return Failure(exc)
    return Success(future.result())
