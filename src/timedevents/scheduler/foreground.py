"""
scheduler/foreground.py — ForegroundExecutor implementations

A ForegroundExecutor receives FOREGROUND callbacks from the dispatcher thread
and runs them later on a designated "foreground" context. The dispatcher
never waits: invoke_later() must only enqueue.

Implementations
---------------
    AsyncioForegroundExecutor — loop.call_soon_threadsafe on a given loop
    QueueForegroundExecutor   — a queue the owning thread drains itself
    QtForegroundExecutor      — a Qt signal with a queued connection into
                                the GUI thread (requires PyQt6)

Threading rules (same as for any UI toolkit):
    - NEVER touch widgets from the dispatcher thread
    - invoke_later() is the ONLY way in
"""

from __future__ import annotations

import asyncio
import queue
from typing import Any, Callable, Optional, Protocol, runtime_checkable


@runtime_checkable
class ForegroundExecutor(Protocol):
    """Schedules a callback for asynchronous execution on a foreground context."""

    def invoke_later(self, callback: Callable[[], Any]) -> None: ...


# ─────────────────────────────────────────────────────────────────────────────
# asyncio
# ─────────────────────────────────────────────────────────────────────────────

class AsyncioForegroundExecutor:
    """
    Runs callbacks on an asyncio event loop.

    Usage::

        loop = asyncio.get_running_loop()
        scheduler.set_foreground_executor(AsyncioForegroundExecutor(loop))

    invoke_later() raises RuntimeError if the loop is closed; the dispatcher
    reports that through the scheduler's error handler.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def invoke_later(self, callback: Callable[[], Any]) -> None:
        self._loop.call_soon_threadsafe(callback)


# ─────────────────────────────────────────────────────────────────────────────
# Plain queue
# ─────────────────────────────────────────────────────────────────────────────

class QueueForegroundExecutor:
    """
    Collects callbacks until the owning thread calls run_pending().

    Suits hand-written main loops (games, CLIs, test harnesses) that already
    poll once per iteration::

        fg = QueueForegroundExecutor()
        scheduler.set_foreground_executor(fg)
        while running:
            fg.run_pending()
            ...
    """

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[Callable[[], Any]] = queue.SimpleQueue()

    def invoke_later(self, callback: Callable[[], Any]) -> None:
        self._queue.put(callback)

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    def run_pending(self, timeout: Optional[float] = None) -> int:
        """
        Run every queued callback on the calling thread, in submission order.

        Args:
            timeout: If given, block up to this many seconds for the first
                     callback when the queue is empty.

        Returns:
            Number of callbacks run.
        """
        ran = 0
        if timeout is not None:
            try:
                first = self._queue.get(timeout=timeout)
            except queue.Empty:
                return 0
            first()
            ran += 1
        while True:
            try:
                callback = self._queue.get_nowait()
            except queue.Empty:
                return ran
            callback()
            ran += 1


# ─────────────────────────────────────────────────────────────────────────────
# Qt
# ─────────────────────────────────────────────────────────────────────────────

class QtForegroundExecutor:
    """
    Runs callbacks on the Qt GUI thread.

    Construct it on the GUI thread, after the QApplication exists. Emitting a
    signal from the dispatcher thread to a QObject living on the GUI thread
    uses a queued connection, so the slot runs inside the Qt event loop.
    """

    def __init__(self) -> None:
        try:
            from PyQt6.QtCore import QObject, pyqtSignal, pyqtSlot
        except ImportError as exc:
            raise ImportError(
                "QtForegroundExecutor requires PyQt6. "
                "Install: pip install 'timedevents[qt]'"
            ) from exc

        class _Bridge(QObject):
            invoke = pyqtSignal(object)

            @pyqtSlot(object)
            def run(self, callback: Callable[[], Any]) -> None:
                callback()

        self._bridge = _Bridge()
        self._bridge.invoke.connect(self._bridge.run)

    def invoke_later(self, callback: Callable[[], Any]) -> None:
        self._bridge.invoke.emit(callback)
