"""Structured logging for dzi, built on structlog.

Every log line emitted while a pyramid is being built carries the build's
correlation keys (``build_id``, ``source`` and ``pyramid_level``), so the
output of concurrent builds can be told apart. Output is rendered either as
JSON lines or as a human-readable console format.
"""

import logging
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, cast

import structlog
from structlog.types import Processor

from dzi.config import settings

CORRELATION_KEYS = ("build_id", "source", "pyramid_level")

_correlation: dict[str, ContextVar[Any]] = {
    key: ContextVar(f"dzi_{key}", default=None) for key in CORRELATION_KEYS
}


def current_correlation_context() -> dict[str, Any]:
    """Return the correlation keys that are currently set."""
    values = {key: var.get() for key, var in _correlation.items()}
    return {key: value for key, value in values.items() if value is not None}


def set_correlation_context(
    *,
    build_id: str | None = None,
    source: str | None = None,
    pyramid_level: int | None = None,
) -> None:
    """Set correlation keys in the current context.

    Keys passed as None keep their current value.
    """
    updates = {"build_id": build_id, "source": source, "pyramid_level": pyramid_level}
    for key, value in updates.items():
        if value is not None:
            _correlation[key].set(value)


def clear_correlation_context() -> None:
    """Unset every correlation key."""
    for var in _correlation.values():
        var.set(None)


@contextmanager
def correlation_context(
    *,
    build_id: str | None = None,
    source: str | None = None,
    pyramid_level: int | None = None,
) -> Iterator[None]:
    """Scope correlation keys to a block.

    On entry every key is replaced, so keys not given here are unset inside
    the block. On exit all keys return to their values from before entry,
    including keys changed inside the block with set_correlation_context().
    """
    values = {"build_id": build_id, "source": source, "pyramid_level": pyramid_level}
    tokens: list[tuple[ContextVar[Any], Token[Any]]] = [
        (var, var.set(values[key])) for key, var in _correlation.items()
    ]
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def _inject_correlation(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    _ = logger, method_name
    event_dict.update(current_correlation_context())
    return event_dict


def _renderers(log_format: str) -> list[Processor]:
    if log_format == "json":
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    if log_format == "console":
        return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]
    raise ValueError(f"Unknown log format {log_format!r}; expected 'console' or 'json'")


def configure_logging(
    level: str | None = None,
    log_format: str | None = None,
) -> None:
    """Route structlog through stdlib logging on stdout.

    Safe to call more than once; the last call wins.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Defaults to
            settings.LOG_LEVEL.
        log_format: "console" or "json". Defaults to settings.LOG_FORMAT.

    Raises:
        ValueError: If log_format is not recognised.
    """
    level = level or settings.LOG_LEVEL
    log_format = log_format or settings.LOG_FORMAT
    renderers = _renderers(log_format)

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _inject_correlation,
            *renderers,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
        force=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named ``name``."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
