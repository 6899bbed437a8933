"""
scheduler/event.py — EventRecord and DispatchTarget

An EventRecord is the immutable description of one pending callback. It is
created by TimedEventScheduler.schedule(), lives in the OrderedEventStore
until it is cancelled or popped by the dispatcher, and is never reinserted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

EventCallback = Callable[[], Any]


class DispatchTarget(str, Enum):
    """Where a due callback runs."""

    BACKGROUND = "background"   # on the dispatcher thread itself
    FOREGROUND = "foreground"   # handed to the ForegroundExecutor

    @classmethod
    def coerce(cls, value: "DispatchTarget | str | bool") -> "DispatchTarget":
        """
        Accept an enum member, its string value, or a bool.

        ``True`` means foreground, matching the "run in the UI event thread"
        flag older callers pass.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.FOREGROUND if value else cls.BACKGROUND
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                pass
        raise ValueError(
            f"dispatch target must be one of {[t.value for t in cls]}, got {value!r}"
        )


@dataclass(frozen=True)
class EventRecord:
    id: int
    due: float                              # clock() seconds, monotonic
    callback: EventCallback = field(compare=False)
    target: DispatchTarget = field(default=DispatchTarget.BACKGROUND, compare=False)

    @property
    def sort_key(self) -> tuple[float, int]:
        return (self.due, self.id)

    def __lt__(self, other: "EventRecord") -> bool:
        return self.sort_key < other.sort_key

    @property
    def name(self) -> str:
        """Best-effort callback name for log lines."""
        fn = self.callback
        return getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None) or repr(fn)
