"""At-most-once settlement for a future fed by several asynchronous sources.

A ``SettlementGuard`` owns one produced future (the result sink), an
optional timer and the sources attached to it. Sources report through
``settle_success`` / ``settle_failure`` / ``settle_cancelled``; the first
call wins and every later call is dropped. Any settlement, including
external cancellation of the produced future, cancels the pending timer.

Continuations run on the event loop thread, so a plain flag is enough to
arbitrate between sources.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import TYPE_CHECKING, Any

from aiocombine.config import current_config
from aiocombine.errors import as_failure_reason

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class SettlementGuard[T]:
    """Arbitrates settlement attempts for one produced future."""

    __slots__ = ("_future", "_log_drops", "_settled", "_sources", "_timer")

    def __init__(
        self, future: asyncio.Future[T], *, log_drops: bool | None = None
    ) -> None:
        self._future = future
        self._settled = future.done()
        self._timer: asyncio.TimerHandle | None = None
        # Strong references to attached sources while the produced future is alive
        self._sources: list[asyncio.Future[Any]] = []
        self._log_drops = (
            current_config().log_dropped_settlements if log_drops is None else log_drops
        )
        future.add_done_callback(self._on_sink_done)

    @classmethod
    def create(cls) -> SettlementGuard[T]:
        """Create a guard bound to a fresh future on the running loop."""
        return cls(asyncio.get_running_loop().create_future())

    @property
    def future(self) -> asyncio.Future[T]:
        return self._future

    @property
    def settled(self) -> bool:
        return self._settled or self._future.done()

    # --- Settlement entry points ---

    def settle_success(self, value: T) -> bool:
        """Deliver ``value`` unless already settled. Return True if this call won."""
        if not self._claim("success"):
            return False
        self._future.set_result(value)
        return True

    def settle_failure(self, reason: object) -> bool:
        """Deliver ``reason`` as the failure unless already settled.

        Non-exception reasons are wrapped in ``RejectionError``. A
        ``CancelledError`` reason cancels the produced future instead.
        """
        if isinstance(reason, asyncio.CancelledError):
            return self.settle_cancelled()
        if not self._claim("failure"):
            return False
        self._future.set_exception(as_failure_reason(reason))
        return True

    def settle_cancelled(self) -> bool:
        """Cancel the produced future unless already settled."""
        if not self._claim("cancellation"):
            return False
        self._future.cancel()
        return True

    def _claim(self, kind: str) -> bool:
        self._cancel_timer()
        if self.settled:
            if self._log_drops:
                logger.debug("Dropped %s settlement for %r", kind, self._future)
            return False
        self._settled = True
        return True

    # --- Timer ---

    def arm_timer(self, delay: float, on_fire: Callable[[], object]) -> None:
        """Run ``on_fire`` after ``delay`` seconds unless the guard settles first.

        ``on_fire`` is expected to call one of the settle methods. If it
        raises, the guard settles with the raised exception. Arming a
        settled guard does nothing; arming again replaces the pending timer.
        """
        if self.settled:
            return
        self._cancel_timer()
        loop = self._future.get_loop()
        self._timer = loop.call_later(delay, self._fire, on_fire)

    def _fire(self, on_fire: Callable[[], object]) -> None:
        self._timer = None
        # A cancelled handle may already be queued; the flag is authoritative
        if self.settled:
            return
        logger.debug("Timer fired for pending %r", self._future)
        try:
            on_fire()
        except (Exception, asyncio.CancelledError) as exc:
            self.settle_failure(exc)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    # --- Sources ---

    def attach[S](
        self,
        source: Awaitable[S],
        on_success: Callable[[S], object] | None = None,
        on_failure: Callable[[BaseException], object] | None = None,
    ) -> asyncio.Future[S]:
        """Register a continuation for ``source`` and return it as a future.

        Coroutines are scheduled as tasks on the guard's loop. By default the
        source's outcome is mirrored into the guard. Custom continuations
        run only while the guard is pending; an exception raised by one
        settles the guard with that exception.

        Continuations run in registration order for sources that are
        already settled.
        """
        fut = asyncio.ensure_future(source, loop=self._future.get_loop())
        self._sources.append(fut)
        fut.add_done_callback(
            functools.partial(
                self._on_source_done,
                on_success or self.settle_success,
                on_failure or self.settle_failure,
            )
        )
        return fut

    def _on_source_done(
        self,
        on_success: Callable[[Any], object],
        on_failure: Callable[[BaseException], object],
        fut: asyncio.Future[Any],
    ) -> None:
        reason: BaseException | None
        if fut.cancelled():
            reason = asyncio.CancelledError()
        else:
            # Retrieve before checking the flag so a late failure is never
            # reported as "exception was never retrieved".
            reason = fut.exception()

        if self.settled:
            if self._log_drops:
                logger.debug("Ignoring late outcome of %r for %r", fut, self._future)
            return

        try:
            if reason is None:
                on_success(fut.result())
            else:
                on_failure(reason)
        except (Exception, asyncio.CancelledError) as exc:
            self.settle_failure(exc)

    def _on_sink_done(self, _: asyncio.Future[T]) -> None:
        self._settled = True
        self._cancel_timer()
