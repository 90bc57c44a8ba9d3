"""
Time sources.

All window checks (listing start/end, delivery deadlines) read the current
timestamp from an injected `Clock`. Timestamps are integer Unix seconds and are
treated as monotonic but otherwise untrusted input.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional, Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    def now(self) -> int: ...


class SystemClock:
    """Wall-clock seconds; never goes backwards within a process."""

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


class ManualClock:
    """
    Caller-driven clock for devnets and tests. Mirrors block timestamps: it may
    stand still or move forward, never backward.
    """

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ValueError("start must be non-negative")
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> int:
        if timestamp < self._now:
            raise ValueError(f"clock cannot move backwards ({timestamp} < {self._now})")
        self._now = int(timestamp)
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("seconds must be non-negative")
        self._now += int(seconds)
        return self._now


class CallClock:
    """
    Clock view that answers one timestamp for the whole of a call.

    Inside `pinned()` every `now()` returns the value read on entry, so window
    checks, deadlines and event timestamps of one operation agree even on a
    wall clock. Outside a pin it reads through to `source`.
    """

    def __init__(self, source: Clock) -> None:
        self.source = source
        self._pinned: Optional[int] = None

    def now(self) -> int:
        if self._pinned is not None:
            return self._pinned
        return self.source.now()

    @contextmanager
    def pinned(self) -> Iterator[int]:
        if self._pinned is not None:
            yield self._pinned
            return
        self._pinned = self.source.now()
        try:
            yield self._pinned
        finally:
            self._pinned = None


__all__ = ["Clock", "SystemClock", "ManualClock", "CallClock"]
