"""
scheduler/ — one-shot timed events on a background thread.

Exports:
    TimedEventScheduler  — the facade (schedule / cancel / set_error_handler)
    DispatchTarget       — BACKGROUND or FOREGROUND
    ErrorHandler         — protocol for failure sinks
    ForegroundExecutor   — protocol for foreground contexts, plus the
                           asyncio / queue / Qt implementations
"""

from timedevents.scheduler.dispatcher import (
    CallableErrorHandler,
    CallbackResult,
    Dispatcher,
    DispatcherState,
    ErrorHandler,
    LoggingErrorHandler,
    run_isolated,
)
from timedevents.scheduler.event import DispatchTarget, EventRecord
from timedevents.scheduler.foreground import (
    AsyncioForegroundExecutor,
    ForegroundExecutor,
    QtForegroundExecutor,
    QueueForegroundExecutor,
)
from timedevents.scheduler.scheduler import SchedulerStats, TimedEventScheduler
from timedevents.scheduler.store import OrderedEventStore

__all__ = [
    "AsyncioForegroundExecutor",
    "CallableErrorHandler",
    "CallbackResult",
    "DispatchTarget",
    "Dispatcher",
    "DispatcherState",
    "ErrorHandler",
    "EventRecord",
    "ForegroundExecutor",
    "LoggingErrorHandler",
    "OrderedEventStore",
    "QtForegroundExecutor",
    "QueueForegroundExecutor",
    "SchedulerStats",
    "TimedEventScheduler",
    "run_isolated",
]
