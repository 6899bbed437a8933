"""
exceptions.py — timedevents Unified Error Hierarchy

All timedevents-specific exceptions live here. Every layer raises typed
subclasses of TimedEventsError — never bare Exception.

Import from here, not from individual modules:
    from timedevents.exceptions import SchedulerClosedError, ForegroundDispatchError

Hierarchy:
    TimedEventsError
    ├── SchedulerError
    │   ├── SchedulerClosedError
    │   └── DispatcherStateError
    ├── DispatchError
    │   ├── ForegroundDispatchError
    │   └── ForegroundUnavailableError
    └── ConfigError
"""

from __future__ import annotations


# ─────────────────────────────────────────────────────────────────────────────
# Root
# ─────────────────────────────────────────────────────────────────────────────

class TimedEventsError(Exception):
    """Base class for all timedevents exceptions."""


# ─────────────────────────────────────────────────────────────────────────────
# Scheduler layer
# ─────────────────────────────────────────────────────────────────────────────

class SchedulerError(TimedEventsError):
    """Base for scheduler lifecycle errors."""


class SchedulerClosedError(SchedulerError):
    """schedule() was called after the scheduler was shut down."""


class DispatcherStateError(SchedulerError):
    """The dispatcher was asked to do something its current state forbids."""


# ─────────────────────────────────────────────────────────────────────────────
# Dispatch layer — reported through the ErrorHandler, never raised to callers
# ─────────────────────────────────────────────────────────────────────────────

class DispatchError(TimedEventsError):
    """Base for failures to hand a due event to its execution context."""

    def __init__(self, event_id: int, message: str = "") -> None:
        self.event_id = event_id
        super().__init__(message or f"Event {event_id} could not be dispatched.")


class ForegroundDispatchError(DispatchError):
    """The foreground executor refused or failed to accept a callback."""

    def __init__(self, event_id: int, message: str = "") -> None:
        super().__init__(
            event_id,
            message or f"Foreground executor rejected event {event_id}.",
        )


class ForegroundUnavailableError(DispatchError):
    """A FOREGROUND event became due but no foreground executor is installed."""

    def __init__(self, event_id: int, message: str = "") -> None:
        super().__init__(
            event_id,
            message or (
                f"Event {event_id} targets the foreground but no foreground "
                f"executor is installed; the callback was not run."
            ),
        )


# ─────────────────────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────────────────────

class ConfigError(TimedEventsError):
    """Raised by Settings.validate_all() when one or more config problems are found."""


__all__ = [
    "TimedEventsError",
    # Scheduler
    "SchedulerError",
    "SchedulerClosedError",
    "DispatcherStateError",
    # Dispatch
    "DispatchError",
    "ForegroundDispatchError",
    "ForegroundUnavailableError",
    # Config
    "ConfigError",
]
