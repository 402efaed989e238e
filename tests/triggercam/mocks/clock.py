"""Clocks for deterministic flush timing in tests."""

from __future__ import annotations

import threading
import time


class FakeClock:
    """Virtual clock: sleep advances time without waiting."""

    def __init__(self) -> None:
        self._now = 0.0
        self._lock = threading.Lock()
        self.sleeps: list[float] = []

    def now(self) -> float:
        with self._lock:
            return self._now

    def sleep(self, seconds: float) -> None:
        with self._lock:
            self._now += float(seconds)
            self.sleeps.append(float(seconds))


class GatedClock:
    """Real clock whose sleep blocks until `release()` is called."""

    def __init__(self) -> None:
        self._gate = threading.Event()
        self._sleepers = 0
        self._cond = threading.Condition()

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        _ = seconds
        with self._cond:
            self._sleepers += 1
            self._cond.notify_all()
        self._gate.wait(timeout=10)

    def release(self) -> None:
        self._gate.set()

    def wait_for_sleepers(self, count: int, timeout: float = 5.0) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._sleepers >= count, timeout=timeout)


def wait_until(predicate, timeout: float = 5.0, interval: float = 0.002) -> bool:  # type: ignore[no-untyped-def]
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())
