"""
observability/ — structured logging for timedevents.

Exports:
    setup_logging, setup_logging_from_settings, get_logger,
    bind_context, clear_context
"""

from timedevents.observability.logger import (
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
    setup_logging_from_settings,
)

__all__ = [
    "bind_context",
    "clear_context",
    "get_logger",
    "setup_logging",
    "setup_logging_from_settings",
]
