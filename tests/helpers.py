"""Test helpers (small, reusable task doubles).

Keep this file tiny: it exists so suites don't each grow their own
"future that settles later" plumbing.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any


def resolved(value: Any) -> asyncio.Future[Any]:
    """Return a future on the running loop that already succeeded."""
    fut = asyncio.get_running_loop().create_future()
    fut.set_result(value)
    return fut


def rejected(reason: BaseException) -> asyncio.Future[Any]:
    """Return a future on the running loop that already failed."""
    fut = asyncio.get_running_loop().create_future()
    fut.set_exception(reason)
    return fut


def never() -> asyncio.Future[Any]:
    """Return a future that nothing will ever settle."""
    return asyncio.get_running_loop().create_future()


async def succeed_after(delay: float, value: Any) -> Any:
    await asyncio.sleep(delay)
    return value


async def fail_after(delay: float, reason: BaseException) -> Any:
    await asyncio.sleep(delay)
    raise reason


@dataclass
class Recorder:
    """Callable that records its arguments and returns a scripted value."""

    returns: Any = None
    raises: BaseException | None = None
    calls: list[tuple[Any, ...]] = field(default_factory=list)

    def __call__(self, *args: Any) -> Any:
        self.calls.append(args)
        if self.raises is not None:
            raise self.raises
        return self.returns


async def settle(future: asyncio.Future[Any]) -> None:
    """Wait for *future* without raising its exception."""
    await asyncio.wait({future})


async def drain(rounds: int = 5) -> None:
    """Let pending loop callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
