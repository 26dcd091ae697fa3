"""Configuration schema, resolution and ambient scope.

- ``Settings`` is the pydantic schema: field types, defaults, validation.
- ``FrozenConfig`` is the immutable payload combinators read.
- ``resolve_config`` merges defaults < environment < overrides.
- ``config_scope`` installs a config for the current context (async-safe).

Combinators read the active config once, when they are called.
"""

from __future__ import annotations

from contextlib import contextmanager
import contextvars
from dataclasses import asdict, dataclass
from functools import cache
import os
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from aiocombine.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Generator, Mapping

ENV_PREFIX = "AIOCOMBINE_"

# --- Schema (Pydantic wall) ---


class Settings(BaseModel):
    """Pydantic settings schema for validation and defaults."""

    # Message of the default reject_on_timeout reason
    timeout_message: str = Field(default="Task timed out", min_length=1)
    # supply() delay used when the caller passes none
    supply_delay_s: float = Field(default=0.0, ge=0)
    log_dropped_settlements: bool = Field(default=False)

    model_config = {"extra": "forbid"}

    @field_validator("timeout_message", mode="before")
    @classmethod
    def normalize_timeout_message(cls, v: Any) -> Any:
        """Trim surrounding whitespace."""
        if isinstance(v, str):
            return v.strip()
        return v


# --- Immutable runtime payload ---


@dataclass(frozen=True)
class FrozenConfig:
    """Validated configuration, fixed for the lifetime of a combinator call."""

    timeout_message: str
    supply_delay_s: float
    log_dropped_settlements: bool


# --- Loaders ---


def _coerce_bool(v: str) -> bool:
    return v.strip().lower() in {"1", "true", "yes", "on"}


def load_env() -> dict[str, Any]:
    """Read ``AIOCOMBINE_*`` variables into a dict keyed by field name.

    Unknown names are kept so that validation reports them. Boolean fields
    are coerced here; numeric strings are left for pydantic to parse.
    """
    values: dict[str, Any] = {}
    for key, raw in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX) :].lower()
        info = Settings.model_fields.get(name)
        if info is not None and info.annotation in (bool, "bool"):
            values[name] = _coerce_bool(raw)
        else:
            values[name] = raw
    return values


_DOTENV_LOADED: bool = False


def _load_dotenv_once() -> None:
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    from dotenv import find_dotenv, load_dotenv

    # Look for .env from the working directory, not from this package
    load_dotenv(find_dotenv(usecwd=True))
    _DOTENV_LOADED = True


# --- Public resolution API ---


def resolve_config(overrides: Mapping[str, Any] | None = None) -> FrozenConfig:
    """Resolve configuration into a ``FrozenConfig``.

    Precedence: defaults < environment (``.env`` included) < overrides.

    Raises:
        ConfigurationError: If the merged values fail validation.
    """
    _load_dotenv_once()
    merged = {**load_env(), **(overrides or {})}
    try:
        settings = Settings.model_validate(merged)
    except ValidationError as e:
        err = e.errors()[0]
        msg = err.get("msg") or "invalid value"
        loc = ".".join(str(p) for p in err.get("loc", ()))
        raise ConfigurationError(
            f"Configuration validation failed: {loc}: {msg}" if loc else msg,
            hint=f"Check the {ENV_PREFIX}* environment variables and overrides",
        ) from e
    return FrozenConfig(**settings.model_dump())


@cache
def _default_config() -> FrozenConfig:
    return resolve_config()


def reset_config_cache() -> None:
    """Forget the cached process-wide config so the next read re-resolves it."""
    _default_config.cache_clear()


# --- Ambient scope ---

_AMBIENT: contextvars.ContextVar[FrozenConfig | None] = contextvars.ContextVar(
    "aiocombine_config", default=None
)


def current_config() -> FrozenConfig:
    """Return the config installed by ``config_scope``, else the default."""
    cfg = _AMBIENT.get()
    return cfg if cfg is not None else _default_config()


@contextmanager
def config_scope(
    cfg_or_overrides: Mapping[str, Any] | FrozenConfig | None = None,
    **overrides: Any,
) -> Generator[FrozenConfig]:
    """Run a block with a specific configuration.

    Example:
        with config_scope(timeout_message="upstream too slow"):
            result = await reject_on_timeout(fetch(), 2.0)
    """
    if isinstance(cfg_or_overrides, FrozenConfig):
        cfg = (
            resolve_config({**asdict(cfg_or_overrides), **overrides})
            if overrides
            else cfg_or_overrides
        )
    else:
        cfg = resolve_config({**(cfg_or_overrides or {}), **overrides})
    token = _AMBIENT.set(cfg)
    try:
        yield cfg
    finally:
        _AMBIENT.reset(token)
