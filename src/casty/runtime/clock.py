# src/casty/runtime/clock.py
from __future__ import annotations

import threading
import time
from typing import Protocol


class Clock(Protocol):
    def now_s(self) -> int: ...


class SystemClock:
    """Wall-clock unix seconds."""

    def now_s(self) -> int:
        return int(time.time())


class ManualClock:
    """Deterministic clock for tests and simulations.

    Time only moves when told to, and never backwards.
    """

    def __init__(self, start_s: int | None = None) -> None:
        self._lock = threading.Lock()
        self._now = int(time.time()) if start_s is None else int(start_s)

    def now_s(self) -> int:
        with self._lock:
            return self._now

    def increase(self, seconds: int) -> int:
        s = int(seconds)
        if s < 0:
            raise ValueError(f"cannot increase time by a negative amount: {s}")
        with self._lock:
            self._now += s
            return self._now

    def increase_to(self, ts: int) -> int:
        t = int(ts)
        with self._lock:
            if t < self._now:
                raise ValueError(f"timestamp {t} is lower than the current time {self._now}")
            self._now = t
            return self._now
