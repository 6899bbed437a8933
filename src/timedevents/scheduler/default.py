"""
scheduler/default.py — process-wide convenience scheduler

A thin wrapper around one lazily created TimedEventScheduler, for code that
just wants "run this later" without threading a scheduler object through.
The instance is built from get_settings(), started on first use and shut
down at interpreter exit. A default scheduler that has been shut down, by
shutdown_default_scheduler() or directly, is replaced on next use.

Usage::

    from timedevents.scheduler import default

    event_id = default.schedule(refresh, delay_ms=500)
    default.cancel(event_id)
"""

from __future__ import annotations

import atexit
import threading
from typing import Optional

from timedevents.config.settings import get_settings
from timedevents.exceptions import SchedulerClosedError
from timedevents.scheduler.dispatcher import ErrorHandlerLike
from timedevents.scheduler.event import DispatchTarget, EventCallback
from timedevents.scheduler.foreground import ForegroundExecutor
from timedevents.scheduler.scheduler import TimedEventScheduler

_instance: Optional[TimedEventScheduler] = None
_instance_lock = threading.Lock()
_atexit_registered = False


def get_default_scheduler() -> TimedEventScheduler:
    """Return the running process-wide scheduler, creating it on first call."""
    global _instance, _atexit_registered
    instance = _instance
    if instance is not None and not instance.is_closed:
        return instance  # fast path, no lock needed once set
    with _instance_lock:
        if _instance is None or _instance.is_closed:
            _instance = TimedEventScheduler.from_settings(get_settings()).start()
            if not _atexit_registered:
                atexit.register(shutdown_default_scheduler)
                _atexit_registered = True
        return _instance


def shutdown_default_scheduler() -> int:
    """
    Shut down the process-wide scheduler, if one exists.

    The next call to any function in this module creates a fresh one.
    Returns the number of pending events discarded.
    """
    global _instance
    with _instance_lock:
        instance, _instance = _instance, None
    if instance is None:
        return 0
    return instance.shutdown()


def schedule(
    callback: EventCallback,
    delay_ms: float = 0,
    target: DispatchTarget | str | bool | None = None,
) -> int:
    try:
        return get_default_scheduler().schedule(callback, delay_ms, target)
    except SchedulerClosedError:
        # Lost a race with shutdown; the next lookup builds a fresh instance.
        return get_default_scheduler().schedule(callback, delay_ms, target)


def cancel(event_id: int) -> bool:
    return get_default_scheduler().cancel(event_id)


def set_error_handler(handler: ErrorHandlerLike) -> None:
    get_default_scheduler().set_error_handler(handler)


def set_foreground_executor(executor: Optional[ForegroundExecutor]) -> None:
    get_default_scheduler().set_foreground_executor(executor)
