"""Tests for per-key locks and the capacity gate."""
from __future__ import annotations

import threading
import time

import pytest

from tts_gateway.tts.concurrency import CapacityGate, CapacityReached, KeyedLockTable


class TestKeyedLockTable:
    """Test per-key mutual exclusion."""

    def test_same_key_is_serialized(self):
        locks = KeyedLockTable()
        inside = 0
        max_inside = 0
        guard = threading.Lock()

        def worker():
            nonlocal inside, max_inside
            with locks.hold("k"):
                with guard:
                    inside += 1
                    max_inside = max(max_inside, inside)
                time.sleep(0.01)
                with guard:
                    inside -= 1

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert max_inside == 1

    def test_different_keys_do_not_block(self):
        locks = KeyedLockTable()
        entered_b = threading.Event()

        def other():
            with locks.hold("b"):
                entered_b.set()

        with locks.hold("a"):
            t = threading.Thread(target=other)
            t.start()
            assert entered_b.wait(timeout=2.0)
        t.join()

    def test_table_is_emptied(self):
        locks = KeyedLockTable()
        with locks.hold("a"):
            assert len(locks) == 1
        assert len(locks) == 0

    def test_lock_released_on_exception(self):
        locks = KeyedLockTable()
        with pytest.raises(ValueError):
            with locks.hold("a"):
                raise ValueError("boom")

        acquired = threading.Event()

        def again():
            with locks.hold("a"):
                acquired.set()

        t = threading.Thread(target=again)
        t.start()
        assert acquired.wait(timeout=2.0)
        t.join()
        assert len(locks) == 0


class TestCapacityGate:
    """Test reservations against the entry ceiling."""

    def test_admits_below_max(self):
        gate = CapacityGate(max_entries=2)
        with gate.reserve(lambda: 1):
            assert gate.reserved == 1
        assert gate.reserved == 0

    def test_rejects_at_max(self):
        gate = CapacityGate(max_entries=2)
        with pytest.raises(CapacityReached) as exc_info:
            with gate.reserve(lambda: 2):
                pass
        assert exc_info.value.current == 2
        assert exc_info.value.max_entries == 2

    def test_reservations_count_against_max(self):
        gate = CapacityGate(max_entries=2)
        with gate.reserve(lambda: 0):
            with gate.reserve(lambda: 0):
                with pytest.raises(CapacityReached) as exc_info:
                    with gate.reserve(lambda: 0):
                        pass
                assert exc_info.value.reserved == 2

    def test_released_on_exception(self):
        gate = CapacityGate(max_entries=1)
        with pytest.raises(RuntimeError):
            with gate.reserve(lambda: 0):
                raise RuntimeError("provider down")
        assert gate.reserved == 0
        with gate.reserve(lambda: 0):
            pass

    def test_stats(self):
        gate = CapacityGate(max_entries=1)
        with gate.reserve(lambda: 0):
            pass
        with pytest.raises(CapacityReached):
            with gate.reserve(lambda: 1):
                pass

        stats = gate.stats()
        assert stats.max_entries == 1
        assert stats.reserved == 0
        assert stats.total_admitted == 1
        assert stats.total_rejected == 1

    def test_concurrent_admission_never_exceeds_max(self):
        gate = CapacityGate(max_entries=3)
        stored = []
        stored_lock = threading.Lock()
        admitted = []
        rejected = []

        def count():
            with stored_lock:
                return len(stored)

        def worker(i):
            try:
                with gate.reserve(count):
                    time.sleep(0.02)
                    with stored_lock:
                        stored.append(i)
                admitted.append(i)
            except CapacityReached:
                rejected.append(i)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(admitted) == 3
        assert len(rejected) == 7
        assert len(stored) == 3
