"""
tests/unit/test_event_store.py — EventRecord, DispatchTarget, OrderedEventStore

Covers:
  - DispatchTarget.coerce accepts members, strings and bools
  - EventRecord ordering by (due, id)
  - insert / peek_earliest_due / pop_all_due_by ordering and atomicity
  - remove_by_id idempotence, head purging, heap compaction
  - insert and remove_by_id notify the condition
  - concurrent inserts lose nothing
"""

from __future__ import annotations

import threading
import time

import pytest

from timedevents.scheduler.event import DispatchTarget, EventRecord
from timedevents.scheduler.store import OrderedEventStore


# ── Helpers ───────────────────────────────────────────────────────────────────

def _noop() -> None:
    pass


def _make_record(event_id: int, due: float, target=DispatchTarget.BACKGROUND) -> EventRecord:
    return EventRecord(id=event_id, due=due, callback=_noop, target=target)


def _make_store(*records: EventRecord) -> OrderedEventStore:
    store = OrderedEventStore()
    for r in records:
        store.insert(r)
    return store


# ── DispatchTarget ────────────────────────────────────────────────────────────

class TestDispatchTarget:
    def test_member_passes_through(self):
        assert DispatchTarget.coerce(DispatchTarget.FOREGROUND) is DispatchTarget.FOREGROUND

    def test_string_value(self):
        assert DispatchTarget.coerce("background") is DispatchTarget.BACKGROUND
        assert DispatchTarget.coerce("FOREGROUND") is DispatchTarget.FOREGROUND

    def test_bool_means_foreground_flag(self):
        assert DispatchTarget.coerce(True) is DispatchTarget.FOREGROUND
        assert DispatchTarget.coerce(False) is DispatchTarget.BACKGROUND

    def test_unknown_rejected(self):
        with pytest.raises(ValueError):
            DispatchTarget.coerce("sideways")

    def test_other_types_rejected(self):
        with pytest.raises(ValueError):
            DispatchTarget.coerce(3)


# ── EventRecord ───────────────────────────────────────────────────────────────

class TestEventRecord:
    def test_sort_key(self):
        assert _make_record(4, 1.5).sort_key == (1.5, 4)

    def test_earlier_due_sorts_first(self):
        assert _make_record(2, 1.0) < _make_record(1, 2.0)

    def test_ties_break_by_id(self):
        assert _make_record(1, 1.0) < _make_record(2, 1.0)
        assert not _make_record(2, 1.0) < _make_record(1, 1.0)

    def test_is_frozen(self):
        r = _make_record(1, 1.0)
        with pytest.raises(AttributeError):
            r.due = 2.0  # type: ignore[misc]

    def test_name_uses_qualname(self):
        assert _make_record(1, 1.0).name == "_noop"


# ── OrderedEventStore ─────────────────────────────────────────────────────────

class TestInsertAndPeek:
    def test_empty_store(self):
        store = OrderedEventStore()
        assert len(store) == 0
        assert store.peek_earliest_due() is None

    def test_peek_returns_smallest_due(self):
        store = _make_store(_make_record(1, 5.0), _make_record(2, 2.0), _make_record(3, 9.0))
        assert store.peek_earliest_due() == 2.0
        assert len(store) == 3

    def test_peek_does_not_mutate(self):
        store = _make_store(_make_record(1, 5.0))
        store.peek_earliest_due()
        store.peek_earliest_due()
        assert len(store) == 1

    def test_contains(self):
        store = _make_store(_make_record(7, 1.0))
        assert 7 in store
        assert 8 not in store


class TestPopAllDueBy:
    def test_pops_only_due_records_in_order(self):
        store = _make_store(
            _make_record(1, 3.0),
            _make_record(2, 1.0),
            _make_record(3, 2.0),
            _make_record(4, 10.0),
        )
        popped = store.pop_all_due_by(3.0)
        assert [r.id for r in popped] == [2, 3, 1]
        assert len(store) == 1
        assert store.peek_earliest_due() == 10.0

    def test_equal_due_in_id_order(self):
        store = _make_store(_make_record(3, 1.0), _make_record(1, 1.0), _make_record(2, 1.0))
        assert [r.id for r in store.pop_all_due_by(1.0)] == [1, 2, 3]

    def test_nothing_due(self):
        store = _make_store(_make_record(1, 5.0))
        assert store.pop_all_due_by(4.999) == []
        assert len(store) == 1

    def test_pop_is_exactly_once(self):
        store = _make_store(_make_record(1, 1.0))
        assert len(store.pop_all_due_by(2.0)) == 1
        assert store.pop_all_due_by(2.0) == []

    def test_skips_removed_records(self):
        store = _make_store(_make_record(1, 1.0), _make_record(2, 2.0), _make_record(3, 3.0))
        store.remove_by_id(2)
        assert [r.id for r in store.pop_all_due_by(5.0)] == [1, 3]


class TestRemoveById:
    def test_remove_present(self):
        store = _make_store(_make_record(1, 1.0))
        assert store.remove_by_id(1) is True
        assert len(store) == 0

    def test_remove_twice_is_false(self):
        store = _make_store(_make_record(1, 1.0))
        store.remove_by_id(1)
        assert store.remove_by_id(1) is False

    def test_remove_unknown_is_false(self):
        assert OrderedEventStore().remove_by_id(9999) is False

    def test_removing_head_updates_peek(self):
        store = _make_store(_make_record(1, 1.0), _make_record(2, 2.0))
        store.remove_by_id(1)
        assert store.peek_earliest_due() == 2.0

    def test_removing_last_record_empties_peek(self):
        store = _make_store(_make_record(1, 1.0))
        store.remove_by_id(1)
        assert store.peek_earliest_due() is None

    def test_removing_non_head_keeps_peek(self):
        store = _make_store(_make_record(1, 1.0), _make_record(2, 2.0))
        store.remove_by_id(2)
        assert store.peek_earliest_due() == 1.0

    def test_mass_cancellation_compacts_heap(self):
        store = OrderedEventStore()
        for i in range(1, 501):
            store.insert(_make_record(i, 1000.0 + i))
        store.insert(_make_record(501, 0.5))
        for i in range(1, 501):
            store.remove_by_id(i)
        assert len(store) == 1
        assert len(store._heap) < 200
        assert store.peek_earliest_due() == 0.5


class TestClearAndWake:
    def test_clear_returns_count(self):
        store = _make_store(_make_record(1, 1.0), _make_record(2, 2.0))
        assert store.clear() == 2
        assert len(store) == 0
        assert store.peek_earliest_due() is None


class TestNotification:
    def _wait_in_thread(self, store: OrderedEventStore) -> tuple[threading.Thread, threading.Event]:
        woke = threading.Event()
        ready = threading.Event()

        def _waiter():
            with store.condition:
                ready.set()
                store.condition.wait(timeout=5.0)
            woke.set()

        t = threading.Thread(target=_waiter, daemon=True)
        t.start()
        ready.wait(1.0)
        return t, woke

    def test_insert_notifies(self):
        store = OrderedEventStore()
        t, woke = self._wait_in_thread(store)
        store.insert(_make_record(1, 1.0))
        assert woke.wait(1.0)
        t.join(1.0)

    def test_remove_notifies(self):
        store = _make_store(_make_record(1, 1.0))
        t, woke = self._wait_in_thread(store)
        store.remove_by_id(1)
        assert woke.wait(1.0)
        t.join(1.0)

    def test_wake_notifies_without_change(self):
        store = _make_store(_make_record(1, 1.0))
        t, woke = self._wait_in_thread(store)
        store.wake()
        assert woke.wait(1.0)
        assert len(store) == 1
        t.join(1.0)


class TestConcurrentInsert:
    def test_no_lost_records(self):
        store = OrderedEventStore()
        per_thread = 200

        def _writer(base: int):
            for i in range(per_thread):
                store.insert(_make_record(base * per_thread + i, time.monotonic()))

        threads = [threading.Thread(target=_writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        popped = store.pop_all_due_by(time.monotonic() + 1.0)
        assert len(popped) == 8 * per_thread
        assert len({r.id for r in popped}) == 8 * per_thread
        keys = [r.sort_key for r in popped]
        assert keys == sorted(keys)
