"""
scheduler/scheduler.py — TimedEventScheduler

Public face of the timed-event scheduler: run a callback once after a delay,
optionally on a foreground context, and cancel it before it fires.

Design
------
* One OrderedEventStore + one Dispatcher thread per scheduler.
* schedule()/cancel() only touch the store under its lock and return at once;
  they never wait on the dispatcher.
* Ids come from a counter advanced under the store's lock, so they are unique
  and follow insertion order even with many caller threads.
* Callback failures never reach schedule()/cancel() callers; they surface
  only through the ErrorHandler (see dispatcher.py).
* Explicit lifecycle: start() / shutdown(), or use it as a context manager.

Usage::

    with TimedEventScheduler() as scheduler:
        event_id = scheduler.schedule(lambda: print("hi"), delay_ms=250)
        scheduler.cancel(event_id)
"""

from __future__ import annotations

import itertools
import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from timedevents.exceptions import SchedulerClosedError
from timedevents.observability.logger import get_logger
from timedevents.scheduler.dispatcher import (
    CallbackResult,
    Dispatcher,
    ErrorHandler,
    ErrorHandlerLike,
)
from timedevents.scheduler.event import DispatchTarget, EventCallback, EventRecord
from timedevents.scheduler.foreground import ForegroundExecutor
from timedevents.scheduler.store import OrderedEventStore

log = get_logger(__name__)


def _delay_seconds(delay_ms: float) -> float:
    """Milliseconds → seconds. NaN means "now"; out-of-range ints saturate to ±inf."""
    try:
        seconds = float(delay_ms) / 1000.0
    except OverflowError:
        return math.inf if delay_ms > 0 else -math.inf
    if math.isnan(seconds):
        return 0.0
    return seconds


# ─────────────────────────────────────────────────────────────────────────────
# SchedulerStats
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class SchedulerStats:
    scheduled: int = 0
    cancelled: int = 0
    fired: int = 0          # events completed, successfully or not
    failed: int = 0         # callbacks that raised, or could not be dispatched
    forwarded: int = 0      # handed to the foreground executor
    last_error: Optional[str] = None


# ─────────────────────────────────────────────────────────────────────────────
# TimedEventScheduler
# ─────────────────────────────────────────────────────────────────────────────

class TimedEventScheduler:
    """
    One-shot delayed callbacks on a background thread.

    Lifecycle::

        scheduler = TimedEventScheduler(foreground_executor=fg)
        scheduler.start()
        scheduler.schedule(callback, delay_ms=100)
        scheduler.shutdown()      # stops the thread, discards pending events

    Introspection::

        scheduler.pending_count   # events waiting to fire
        scheduler.stats           # SchedulerStats snapshot
    """

    def __init__(
        self,
        foreground_executor: Optional[ForegroundExecutor] = None,
        error_handler: ErrorHandlerLike = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        thread_name: str = "timed-events",
        daemon: bool = True,
        shutdown_timeout: float = 5.0,
        default_target: DispatchTarget | str = DispatchTarget.BACKGROUND,
    ) -> None:
        self._clock = clock
        self._store = OrderedEventStore()
        self._ids = itertools.count(1)
        self._shutdown_timeout = shutdown_timeout
        self._default_target = DispatchTarget.coerce(default_target)
        self._closed = False

        self._stats = SchedulerStats()
        self._stats_lock = threading.Lock()

        self._dispatcher = Dispatcher(
            self._store,
            clock=clock,
            error_handler=error_handler,
            foreground_executor=foreground_executor,
            on_result=self._record_result,
            on_forward=self._record_forward,
            thread_name=thread_name,
            daemon=daemon,
        )

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self) -> "TimedEventScheduler":
        """Start the dispatcher thread. Idempotent while running."""
        if self._closed:
            raise SchedulerClosedError("scheduler has been shut down")
        self._dispatcher.start()
        log.info("scheduler.started", pending=len(self._store))
        return self

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> int:
        """
        Stop the dispatcher and discard every pending event.

        Args:
            wait:    Join the dispatcher thread before returning.
            timeout: Max seconds to wait for the join; defaults to the
                     shutdown_timeout given at construction.

        Returns:
            Number of pending events discarded. 0 on repeated calls.
        """
        with self._store.condition:
            if self._closed:
                return 0
            self._closed = True
            discarded = self._store.clear()

        self._dispatcher.stop(
            self._shutdown_timeout if timeout is None else timeout, wait=wait,
        )
        log.info("scheduler.shutdown", discarded=discarded)
        return discarded

    def __enter__(self) -> "TimedEventScheduler":
        return self.start()

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    @property
    def is_running(self) -> bool:
        return not self._closed and self._dispatcher.is_alive

    @property
    def is_closed(self) -> bool:
        return self._closed

    # ── Public operations ─────────────────────────────────────────────────────

    def schedule(
        self,
        callback: EventCallback,
        delay_ms: float = 0,
        target: DispatchTarget | str | bool | None = None,
    ) -> int:
        """
        Run ``callback`` once, ``delay_ms`` milliseconds from now.

        Zero or negative delays mean "as soon as possible". ``target`` picks
        the dispatcher thread (BACKGROUND, the default) or the foreground
        executor (FOREGROUND).

        Returns:
            The event id, usable with cancel().
        """
        if not callable(callback):
            raise TypeError(f"callback must be callable, got {type(callback).__name__}")
        resolved = self._default_target if target is None else DispatchTarget.coerce(target)

        with self._store.condition:
            if self._closed:
                raise SchedulerClosedError("cannot schedule on a scheduler that has been shut down")
            record = EventRecord(
                id=next(self._ids),
                due=self._clock() + _delay_seconds(delay_ms),
                callback=callback,
                target=resolved,
            )
            self._store.insert(record)

        with self._stats_lock:
            self._stats.scheduled += 1
        log.debug(
            "scheduler.event.scheduled",
            event_id=record.id, delay_ms=delay_ms, target=resolved.value, callback=record.name,
        )
        return record.id

    def cancel(self, event_id: int) -> bool:
        """
        Remove a pending event. Returns True if it was still pending.

        Unknown, already-fired and already-cancelled ids are a silent no-op.
        A cancel racing the dispatcher may lose; the callback then runs.
        """
        removed = self._store.remove_by_id(event_id)
        if removed:
            with self._stats_lock:
                self._stats.cancelled += 1
            log.debug("scheduler.event.cancelled", event_id=event_id)
        return removed

    def set_error_handler(self, handler: ErrorHandlerLike) -> None:
        """Install the failure sink. None restores the default logging sink."""
        self._dispatcher.error_handler = handler

    def set_foreground_executor(self, executor: Optional[ForegroundExecutor]) -> None:
        self._dispatcher.foreground_executor = executor

    # ── Introspection ─────────────────────────────────────────────────────────

    @property
    def error_handler(self) -> ErrorHandler:
        return self._dispatcher.error_handler

    @property
    def foreground_executor(self) -> Optional[ForegroundExecutor]:
        return self._dispatcher.foreground_executor

    @property
    def pending_count(self) -> int:
        return len(self._store)

    def is_pending(self, event_id: int) -> bool:
        return event_id in self._store

    @property
    def stats(self) -> SchedulerStats:
        with self._stats_lock:
            return SchedulerStats(**vars(self._stats))

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    # ── Observers (dispatcher / foreground threads) ───────────────────────────

    def _record_result(self, result: CallbackResult) -> None:
        with self._stats_lock:
            self._stats.fired += 1
            if not result.ok:
                self._stats.failed += 1
                self._stats.last_error = f"{type(result.error).__name__}: {result.error}"

    def _record_forward(self, record: EventRecord) -> None:
        with self._stats_lock:
            self._stats.forwarded += 1

    # ── Factory ───────────────────────────────────────────────────────────────

    @classmethod
    def from_settings(
        cls,
        settings,
        foreground_executor: Optional[ForegroundExecutor] = None,
        error_handler: ErrorHandlerLike = None,
    ) -> "TimedEventScheduler":
        """Create a scheduler from timedevents Settings."""
        cfg = settings.scheduler
        return cls(
            foreground_executor=foreground_executor,
            error_handler=error_handler,
            thread_name=cfg.thread_name,
            daemon=cfg.daemon,
            shutdown_timeout=cfg.shutdown_timeout_seconds,
            default_target=cfg.default_target,
        )
