"""Exception hierarchy for aiocombine.

Source failures and errors raised by caller callbacks are never wrapped:
the original exception object becomes the produced task's failure.
The classes here cover the reasons the library itself creates.
"""

from __future__ import annotations


class AiocombineError(Exception):
    """Base exception for all aiocombine errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def __str__(self) -> str:
        """Return the message, followed by the hint when one is attached."""
        msg = super().__str__()
        return f"{msg}. {self.hint}" if self.hint else msg


class ConfigurationError(AiocombineError):
    """Configuration validation or resolution failed."""


class TaskTimeoutError(AiocombineError, TimeoutError):
    """A task did not settle before its timeout elapsed.

    Default failure reason for ``reject_on_timeout``. Subclasses the builtin
    ``TimeoutError`` so callers can catch it without importing aiocombine.
    """

    def __init__(
        self,
        message: str = "Task timed out",
        *,
        hint: str | None = None,
        timeout_s: float | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.timeout_s = timeout_s


class RejectionError(AiocombineError):
    """Carries a failure reason that is not an exception.

    ``asyncio`` futures can only fail with exceptions, so any other value
    offered as a reason is wrapped here and kept unchanged in ``reason``.
    """

    def __init__(self, reason: object) -> None:
        super().__init__(f"Task rejected with reason: {reason!r}")
        self.reason = reason


class TaskPendingError(AiocombineError):
    """An outcome was requested from a task that has not settled yet."""

    def __init__(self, message: str = "Task has not settled yet") -> None:
        super().__init__(
            message,
            hint="Await the task (or add a done callback) before reading its outcome",
        )


def as_failure_reason(reason: object) -> BaseException:
    """Return *reason* as an exception suitable for ``Future.set_exception``.

    Exceptions pass through by identity. ``StopIteration`` cannot be stored
    on an asyncio future, so it is wrapped like any non-exception value.
    """
    if isinstance(reason, BaseException) and not isinstance(reason, StopIteration):
        return reason
    return RejectionError(reason)
