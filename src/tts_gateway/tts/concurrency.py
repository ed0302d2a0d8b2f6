"""
Admission Control for the Create Path.

Creating audio is check-then-act: look for an existing file, check the
entry count, call the provider, write the file. Without coordination two
identical requests would both miss, both pay for synthesis and race on the
write, and concurrent misses could push the directory past its ceiling.

Two primitives close those windows:

    KeyedLockTable
        One lock per fingerprint. The whole check/synthesize/write sequence
        for a key runs under its lock, so a duplicate request waits and then
        finds the file already written. Locks are reference counted and
        dropped when the last holder leaves, so the table stays as small as
        the number of in-flight keys.

    CapacityGate
        Reservations against the entry ceiling. The current count is read
        and a slot reserved under one lock; the slot is held until the
        write has landed (or failed). count + reserved therefore never
        exceeds max_entries.

Usage:
    locks = KeyedLockTable()
    gate = CapacityGate(max_entries=100)

    with locks.hold(key):
        if store.exists(key):
            return key
        with gate.reserve(store.count):
            audio = gateway.synthesize(text, voice)
            store.write(key, audio)
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator

from tts_gateway.core.logging import debug, get_logger

_LOG = get_logger("tts-gateway.concurrency")


class CapacityReached(RuntimeError):
    """Raised by CapacityGate.reserve() when no slot is left."""

    def __init__(self, current: int, reserved: int, max_entries: int):
        self.current = current
        self.reserved = reserved
        self.max_entries = max_entries
        super().__init__(
            f"Capacity reached ({current} stored + {reserved} pending >= {max_entries})"
        )


class _KeyLock:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class KeyedLockTable:
    """
    Per-key mutual exclusion.

    Different keys never block each other; the same key is serialized.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._locks: Dict[str, _KeyLock] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold the lock for key for the duration of the block."""
        with self._lock:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _KeyLock()
            entry.holders += 1

        if entry.holders > 1:
            debug(_LOG, "key_wait", key=key[:8], holders=entry.holders)

        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._lock:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        """Number of keys currently held or awaited."""
        with self._lock:
            return len(self._locks)


@dataclass
class CapacityStats:
    """Statistics for the capacity gate."""
    max_entries: int
    reserved: int
    total_admitted: int
    total_rejected: int


class CapacityGate:
    """
    Reservation counter enforcing the entry ceiling.

    Attributes:
        max_entries: Maximum number of stored entries.
    """

    def __init__(self, max_entries: int):
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._reserved = 0
        self._total_admitted = 0
        self._total_rejected = 0

    @property
    def reserved(self) -> int:
        """Slots currently reserved by in-flight writes."""
        with self._lock:
            return self._reserved

    def stats(self) -> CapacityStats:
        with self._lock:
            return CapacityStats(
                max_entries=self.max_entries,
                reserved=self._reserved,
                total_admitted=self._total_admitted,
                total_rejected=self._total_rejected,
            )

    @contextmanager
    def reserve(self, count: Callable[[], int]) -> Iterator[None]:
        """
        Reserve one slot for the duration of the block.

        Args:
            count: Returns the number of entries currently stored. Called
                while the gate's lock is held.

        Raises:
            CapacityReached: If stored + reserved entries already reach
                max_entries.
        """
        with self._lock:
            current = count()
            if current + self._reserved >= self.max_entries:
                self._total_rejected += 1
                raise CapacityReached(current, self._reserved, self.max_entries)
            self._reserved += 1
            self._total_admitted += 1

        try:
            yield
        finally:
            with self._lock:
                self._reserved = max(0, self._reserved - 1)
