"""
scheduler/store.py — OrderedEventStore

Lock-protected container of pending EventRecords, ordered by (due, id).

Layout
------
* ``_heap``  : heapq of (due, id) keys
* ``_index`` : id → EventRecord for every live record

remove_by_id() drops the record from the index and leaves its key in the
heap. Stale keys are purged whenever they reach the head, so the head of the
heap is always a live record and peek_earliest_due() never has to mutate.

The store owns a threading.Condition. insert() and remove_by_id() notify it
so a dispatcher waiting for the previous earliest due time re-evaluates
immediately. The condition's lock is reentrant: the dispatcher holds it while
calling peek_earliest_due(), and the facade holds it while assigning an id
and calling insert().
"""

from __future__ import annotations

import heapq
import threading
from typing import Optional

from timedevents.scheduler.event import EventRecord

# Rebuild the heap once stale keys outnumber live ones by this margin.
_COMPACT_SLACK = 64


class OrderedEventStore:
    """Pending EventRecords, sorted by (due, id), guarded by one lock."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.RLock())
        self._heap: list[tuple[float, int]] = []
        self._index: dict[int, EventRecord] = {}

    @property
    def condition(self) -> threading.Condition:
        return self._cond

    # ── Mutations ─────────────────────────────────────────────────────────────

    def insert(self, record: EventRecord) -> None:
        with self._cond:
            self._index[record.id] = record
            heapq.heappush(self._heap, record.sort_key)
            self._cond.notify_all()

    def remove_by_id(self, event_id: int) -> bool:
        """Remove the record with this id. Returns False if it was not pending."""
        with self._cond:
            if self._index.pop(event_id, None) is None:
                return False
            if len(self._heap) > 2 * len(self._index) + _COMPACT_SLACK:
                self._heap = [r.sort_key for r in self._index.values()]
                heapq.heapify(self._heap)
            else:
                self._purge_stale_head()
            self._cond.notify_all()
            return True

    def pop_all_due_by(self, now: float) -> list[EventRecord]:
        """Atomically remove and return, in order, every record with due <= now."""
        due: list[EventRecord] = []
        with self._cond:
            while self._heap and self._heap[0][0] <= now:
                _, event_id = heapq.heappop(self._heap)
                record = self._index.pop(event_id, None)
                if record is not None:
                    due.append(record)
            self._purge_stale_head()
        return due

    def clear(self) -> int:
        """Discard every pending record. Returns how many were discarded."""
        with self._cond:
            count = len(self._index)
            self._index.clear()
            self._heap.clear()
            self._cond.notify_all()
            return count

    def wake(self) -> None:
        """Wake any waiter without changing the contents."""
        with self._cond:
            self._cond.notify_all()

    # ── Queries ───────────────────────────────────────────────────────────────

    def peek_earliest_due(self) -> Optional[float]:
        with self._cond:
            return self._heap[0][0] if self._heap else None

    def __len__(self) -> int:
        with self._cond:
            return len(self._index)

    def __contains__(self, event_id: object) -> bool:
        with self._cond:
            return event_id in self._index

    # ── Internal ──────────────────────────────────────────────────────────────

    def _purge_stale_head(self) -> None:
        # Caller holds the lock.
        while self._heap and self._heap[0][1] not in self._index:
            heapq.heappop(self._heap)
