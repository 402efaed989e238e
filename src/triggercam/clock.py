"""Monotonic time source used to time post-trigger delays."""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """What the trigger controller needs from time: a reading and a wait.

    Tests substitute clocks that advance instantly or block until released.
    """

    def now(self) -> float: ...

    def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Wall-clock waits measured on `time.monotonic()`."""

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)
