"""aiocombine: combinators for single-shot asyncio futures.

Public API:
    - combine(): Join two tasks, first failure wins
    - handle() / when_complete(): Observe both outcomes of a task
    - reject_on_timeout() / resolve_on_timeout(): Race a task against a timer
    - supply(): Run a synchronous computation as a deferred future
"""

from __future__ import annotations

import logging

from aiocombine.combinators import (
    Duration,
    combine,
    handle,
    race_against_timeout,
    reject_on_timeout,
    resolve_on_timeout,
    supply,
    when_complete,
)
from aiocombine.config import FrozenConfig, config_scope, resolve_config
from aiocombine.errors import (
    AiocombineError,
    ConfigurationError,
    RejectionError,
    TaskPendingError,
    TaskTimeoutError,
)
from aiocombine.guard import SettlementGuard
from aiocombine.outcome import Failure, Outcome, Success, outcome_of

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("aiocombine")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("aiocombine").addHandler(logging.NullHandler())

__all__ = [
    "AiocombineError",
    "ConfigurationError",
    "Duration",
    "Failure",
    "FrozenConfig",
    "Outcome",
    "RejectionError",
    "SettlementGuard",
    "Success",
    "TaskPendingError",
    "TaskTimeoutError",
    "combine",
    "config_scope",
    "handle",
    "outcome_of",
    "race_against_timeout",
    "reject_on_timeout",
    "resolve_config",
    "resolve_on_timeout",
    "supply",
    "when_complete",
]
