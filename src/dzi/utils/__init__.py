"""Shared utilities for dzi."""

from dzi.utils.logging import (
    clear_correlation_context,
    configure_logging,
    correlation_context,
    current_correlation_context,
    get_logger,
    set_correlation_context,
)

__all__ = [
    "clear_correlation_context",
    "configure_logging",
    "correlation_context",
    "current_correlation_context",
    "get_logger",
    "set_correlation_context",
]
