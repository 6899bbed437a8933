"""
scheduler/dispatcher.py — Dispatcher thread, isolation boundary, error sinks

One long-lived thread per scheduler drains due EventRecords from the
OrderedEventStore and runs them.

State machine
-------------
    IDLE ──start()──► WAITING ──due──► DRAINING ──batch done──► WAITING
                         │                                         │
                         └──────────────stop()──────────► STOPPED ◄┘

WAITING   Under the store's condition: wait forever if the store is empty,
          otherwise wait until the earliest due time. Every wake-up (notify,
          timeout or spurious) re-evaluates from scratch.
DRAINING  pop_all_due_by(now) once, release the lock, then run the snapshot
          in order. Records that become due mid-batch wait for the next pass.
          A popped batch is always finished, even if stop() arrives.

Callbacks never run while the store's lock is held.

Isolation
---------
Every callback runs inside run_isolated(), which converts its outcome into a
CallbackResult instead of letting an exception escape. Failure results go to
the current ErrorHandler on the thread that ran the callback (the dispatcher
thread for BACKGROUND, the foreground context for FOREGROUND). A failing
callback never stops the dispatcher or later events.
"""

from __future__ import annotations

import functools
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Protocol, Union, runtime_checkable

from timedevents.exceptions import (
    DispatcherStateError,
    ForegroundDispatchError,
    ForegroundUnavailableError,
)
from timedevents.observability.logger import get_logger
from timedevents.scheduler.event import DispatchTarget, EventRecord
from timedevents.scheduler.foreground import ForegroundExecutor
from timedevents.scheduler.store import OrderedEventStore

log = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Error handlers
# ─────────────────────────────────────────────────────────────────────────────

@runtime_checkable
class ErrorHandler(Protocol):
    """Receives callback failures. Must not block significantly or raise."""

    def report_error(self, error: BaseException) -> None: ...


class LoggingErrorHandler:
    """Default sink: one structured error line with the traceback attached."""

    def report_error(self, error: BaseException) -> None:
        log.error(
            "scheduler.callback.failed",
            error=str(error),
            error_type=type(error).__name__,
            thread=threading.current_thread().name,
            exc_info=error,
        )


class CallableErrorHandler:
    """Adapts a plain ``fn(error)`` to the ErrorHandler protocol."""

    def __init__(self, fn: Callable[[BaseException], Any]) -> None:
        self._fn = fn

    def report_error(self, error: BaseException) -> None:
        self._fn(error)


ErrorHandlerLike = Union[ErrorHandler, Callable[[BaseException], Any], None]


def as_error_handler(handler: ErrorHandlerLike) -> ErrorHandler:
    """Normalise None / a callable / an ErrorHandler into an ErrorHandler."""
    if handler is None:
        return LoggingErrorHandler()
    if isinstance(handler, ErrorHandler):
        return handler
    if callable(handler):
        return CallableErrorHandler(handler)
    raise TypeError(
        f"error handler must define report_error(error) or be callable, "
        f"got {type(handler).__name__}"
    )


# ─────────────────────────────────────────────────────────────────────────────
# Result type
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CallbackResult:
    event_id: int
    target: DispatchTarget
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, record: EventRecord) -> "CallbackResult":
        return cls(event_id=record.id, target=record.target)

    @classmethod
    def failure(cls, record: EventRecord, error: BaseException) -> "CallbackResult":
        return cls(event_id=record.id, target=record.target, error=error)


def run_isolated(record: EventRecord) -> CallbackResult:
    """
    Run one callback and capture its outcome. Never raises Exception.

    KeyboardInterrupt and SystemExit are not Exceptions and propagate.
    """
    try:
        record.callback()
    except Exception as exc:
        return CallbackResult.failure(record, exc)
    return CallbackResult.success(record)


# ─────────────────────────────────────────────────────────────────────────────
# Dispatcher
# ─────────────────────────────────────────────────────────────────────────────

class DispatcherState(str, Enum):
    IDLE = "idle"
    WAITING = "waiting"
    DRAINING = "draining"
    STOPPED = "stopped"


ResultObserver = Callable[[CallbackResult], Any]
ForwardObserver = Callable[[EventRecord], Any]


class Dispatcher:
    """
    Background worker that waits for due events and executes or forwards them.

    Lifecycle::

        dispatcher = Dispatcher(store)
        dispatcher.start()
        ...
        dispatcher.stop(timeout=5.0)   # joins the thread

    A stopped dispatcher cannot be restarted.
    """

    def __init__(
        self,
        store: OrderedEventStore,
        *,
        clock: Callable[[], float] = time.monotonic,
        error_handler: ErrorHandlerLike = None,
        foreground_executor: Optional[ForegroundExecutor] = None,
        on_result: Optional[ResultObserver] = None,
        on_forward: Optional[ForwardObserver] = None,
        thread_name: str = "timed-events",
        daemon: bool = True,
    ) -> None:
        self._store = store
        self._clock = clock
        self._error_handler: ErrorHandler = as_error_handler(error_handler)
        self._foreground = foreground_executor
        self._on_result = on_result
        self._on_forward = on_forward
        self._thread_name = thread_name
        self._daemon = daemon

        self._thread: Optional[threading.Thread] = None
        self._state = DispatcherState.IDLE
        self._stop_requested = False

    # ── Collaborators (swappable at any time) ────────────────────────────────

    @property
    def error_handler(self) -> ErrorHandler:
        return self._error_handler

    @error_handler.setter
    def error_handler(self, handler: ErrorHandlerLike) -> None:
        self._error_handler = as_error_handler(handler)

    @property
    def foreground_executor(self) -> Optional[ForegroundExecutor]:
        return self._foreground

    @foreground_executor.setter
    def foreground_executor(self, executor: Optional[ForegroundExecutor]) -> None:
        self._foreground = executor

    # ── Introspection ─────────────────────────────────────────────────────────

    @property
    def state(self) -> DispatcherState:
        return self._state

    @property
    def thread(self) -> Optional[threading.Thread]:
        return self._thread

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Start the dispatcher thread. Calling start() again is a no-op."""
        with self._store.condition:
            if self._state is DispatcherState.STOPPED or self._stop_requested:
                raise DispatcherStateError("dispatcher has been stopped and cannot restart")
            if self._thread is not None:
                return
            self._state = DispatcherState.WAITING
            self._thread = threading.Thread(
                target=self._run, name=self._thread_name, daemon=self._daemon,
            )
            self._thread.start()
        log.info("dispatcher.started", thread=self._thread_name)

    def stop(self, timeout: Optional[float] = None, wait: bool = True) -> bool:
        """
        Ask the loop to exit and wait for it.

        Returns True if the thread has exited (or never started). When called
        from the dispatcher thread itself, e.g. inside a callback, the join is
        skipped and the loop exits once the current batch finishes.
        """
        with self._store.condition:
            self._stop_requested = True
            thread = self._thread
            if thread is None:
                self._state = DispatcherState.STOPPED
                return True
            self._store.condition.notify_all()

        if not wait or thread is threading.current_thread():
            return not thread.is_alive()
        thread.join(timeout)
        stopped = not thread.is_alive()
        if not stopped:
            log.warning("dispatcher.stop.timeout", thread=self._thread_name, timeout=timeout)
        return stopped

    # ── Loop ──────────────────────────────────────────────────────────────────

    def _run(self) -> None:
        try:
            while True:
                batch = self._wait_for_due()
                if batch is None:
                    break
                self._drain(batch)
        finally:
            self._state = DispatcherState.STOPPED
            log.info("dispatcher.stopped", thread=self._thread_name)

    def _wait_for_due(self) -> Optional[list[EventRecord]]:
        """Block until something is due; None means stop was requested."""
        cond = self._store.condition
        with cond:
            self._state = DispatcherState.WAITING
            while not self._stop_requested:
                earliest = self._store.peek_earliest_due()
                if earliest is None:
                    cond.wait()
                    continue
                now = self._clock()
                remaining = earliest - now
                if remaining <= 0:
                    self._state = DispatcherState.DRAINING
                    return self._store.pop_all_due_by(now)
                cond.wait(min(remaining, threading.TIMEOUT_MAX))
            return None

    def _drain(self, batch: list[EventRecord]) -> None:
        log.debug("dispatcher.draining", count=len(batch))
        for record in batch:
            if record.target is DispatchTarget.FOREGROUND:
                self._forward(record)
            else:
                self._complete(run_isolated(record))

    def _forward(self, record: EventRecord) -> None:
        executor = self._foreground
        if executor is None:
            self._complete(
                CallbackResult.failure(record, ForegroundUnavailableError(record.id))
            )
            return
        try:
            executor.invoke_later(functools.partial(self._run_and_complete, record))
        except Exception as exc:
            error = ForegroundDispatchError(record.id, f"Foreground executor rejected event {record.id}: {exc}")
            error.__cause__ = exc
            self._complete(CallbackResult.failure(record, error))
            return
        if self._on_forward is not None:
            self._notify(self._on_forward, record, event_id=record.id)

    def _run_and_complete(self, record: EventRecord) -> None:
        # Runs on the foreground context.
        self._complete(run_isolated(record))

    def _complete(self, result: CallbackResult) -> None:
        if self._on_result is not None:
            self._notify(self._on_result, result, event_id=result.event_id)
        if result.error is not None:
            self._report(result)

    def _report(self, result: CallbackResult) -> None:
        handler = self._error_handler
        try:
            handler.report_error(result.error)
        except Exception:
            log.exception(
                "scheduler.error_handler.failed",
                event_id=result.event_id,
                handler=type(handler).__name__,
            )

    @staticmethod
    def _notify(observer: Callable[[Any], None], payload: Any, *, event_id: int) -> None:
        try:
            observer(payload)
        except Exception:
            log.exception(
                "dispatcher.observer.failed",
                event_id=event_id,
                observer=getattr(observer, "__qualname__", type(observer).__name__),
            )
