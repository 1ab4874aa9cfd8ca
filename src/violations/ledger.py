"""
Violation ledger: the bounded, newest-first violation window shared by all
camera sources.

Inserts from camera threads are linearized under one lock; readers get an
immutable tuple, so a snapshot or aggregate never observes a half-applied
insert. Subscribers are notified after each successful insert, outside the
entry lock but in insert order.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable, Deque, Dict, List, Tuple

from models.violation import Violation, ViolationType

DEFAULT_CAPACITY = 10

ViolationListener = Callable[[Violation], None]


class ViolationLedger:
    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        # Left end is newest; maxlen drops from the right (oldest).
        self._entries: Deque[Violation] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._listeners: List[ViolationListener] = []
        self._listeners_lock = threading.Lock()
        # Held across insert and notify; reentrant so a listener may insert.
        self._notify_lock = threading.RLock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def insert(self, violation: Violation) -> None:
        """Insert as newest entry, evicting the oldest beyond capacity."""
        with self._notify_lock:
            with self._lock:
                self._entries.appendleft(violation)
            self._notify(violation)

    def snapshot(self) -> Tuple[Violation, ...]:
        """Current entries, newest first."""
        with self._lock:
            return tuple(self._entries)

    def aggregate(self) -> Dict[str, int]:
        """Per-type counts over the current snapshot, plus `total`."""
        entries = self.snapshot()
        counts: Dict[str, int] = {t.value: 0 for t in ViolationType}
        for v in entries:
            counts[v.type.value] += 1
        counts["total"] = len(entries)
        return counts

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def subscribe(self, listener: ViolationListener) -> None:
        """Register a callback invoked with each inserted violation."""
        with self._listeners_lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ViolationListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, violation: Violation) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(violation)
            except Exception as e:
                logging.warning(f"Violation listener error: {e}")
