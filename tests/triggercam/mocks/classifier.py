"""Mock classifier for testing."""

from __future__ import annotations

import threading
from collections.abc import Sequence

import numpy as np
import numpy.typing as npt

from triggercam.interfaces import Classifier


class MockClassifier(Classifier):
    """Returns scripted labels, optionally blocking or failing on given calls.

    Args:
        labels: Label returned for call N (0-based); `default` afterwards
        default: Label returned once `labels` is exhausted
        fail_on: Call indexes that raise RuntimeError
        gates: Call index -> Event the call waits on before returning
    """

    def __init__(
        self,
        labels: Sequence[int] = (),
        *,
        default: int = 0,
        fail_on: Sequence[int] = (),
        gates: dict[int, threading.Event] | None = None,
    ) -> None:
        self._labels = list(labels)
        self._default = default
        self._fail_on = set(fail_on)
        self._gates = dict(gates or {})
        self._cond = threading.Condition()
        self.calls = 0
        self.frames_seen: list[int] = []
        self.closed = False

    def classify(self, frame: npt.NDArray[np.uint8]) -> int:
        with self._cond:
            index = self.calls
            self.calls += 1
            self.frames_seen.append(int(np.asarray(frame).flat[0]))
            self._cond.notify_all()

        gate = self._gates.get(index)
        if gate is not None:
            gate.wait(timeout=10)

        if index in self._fail_on:
            raise RuntimeError(f"Simulated classifier failure on call {index}")
        if index < len(self._labels):
            return self._labels[index]
        return self._default

    def wait_for_calls(self, count: int, timeout: float = 5.0) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self.calls >= count, timeout=timeout)

    def close(self) -> None:
        self.closed = True


class MutatingClassifier(Classifier):
    """Tries to scribble on its input frame."""

    def classify(self, frame: npt.NDArray[np.uint8]) -> int:
        frame[...] = 0
        return 0
