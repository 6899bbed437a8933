"""
timedevents — run a callback once after a delay, on a background thread or a
foreground context, and cancel it before it fires.

    from timedevents import TimedEventScheduler, DispatchTarget

    with TimedEventScheduler() as scheduler:
        scheduler.schedule(flush, delay_ms=100)
"""

from timedevents.scheduler import (
    AsyncioForegroundExecutor,
    DispatchTarget,
    ErrorHandler,
    ForegroundExecutor,
    QueueForegroundExecutor,
    TimedEventScheduler,
)

__version__ = "1.0.0"

__all__ = [
    "AsyncioForegroundExecutor",
    "DispatchTarget",
    "ErrorHandler",
    "ForegroundExecutor",
    "QueueForegroundExecutor",
    "TimedEventScheduler",
    "__version__",
]
