"""Bounded in-memory frame buffer shared by the capture loop and flush tasks.

Frames live in a fixed-size slot array. The capture thread is the only writer;
flush tasks read through `snapshot()`, which copies node references under a
brief lock and then releases it so pushes continue during a long encode.
Nodes are frozen once created and eviction only drops the arena's reference,
so a snapshot never observes a half-written node.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import overload

import numpy as np
import numpy.typing as npt

from triggercam.errors import TransientFrameError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, eq=False)
class BufferedFrame:
    """One buffered frame with its push sequence number.

    `data` is a private, read-only copy of the source frame.
    """

    seq: int
    data: npt.NDArray[np.uint8]

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])


class BufferSnapshot(Sequence[BufferedFrame]):
    """Immutable, restartable, insertion-ordered view of buffered frames."""

    __slots__ = ("_nodes",)

    def __init__(self, nodes: tuple[BufferedFrame, ...]) -> None:
        self._nodes = nodes

    @overload
    def __getitem__(self, index: int) -> BufferedFrame: ...

    @overload
    def __getitem__(self, index: slice) -> BufferSnapshot: ...

    def __getitem__(self, index: int | slice) -> BufferedFrame | BufferSnapshot:
        if isinstance(index, slice):
            return BufferSnapshot(self._nodes[index])
        return self._nodes[index]

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[BufferedFrame]:
        return iter(self._nodes)

    def frames(self) -> Iterator[npt.NDArray[np.uint8]]:
        for node in self._nodes:
            yield node.data

    @property
    def width(self) -> int | None:
        return self._nodes[0].width if self._nodes else None

    @property
    def height(self) -> int | None:
        return self._nodes[0].height if self._nodes else None

    def __repr__(self) -> str:
        if not self._nodes:
            return "BufferSnapshot(empty)"
        return (
            f"BufferSnapshot(len={len(self._nodes)}, "
            f"seq={self._nodes[0].seq}..{self._nodes[-1].seq})"
        )


class RingBuffer:
    """Fixed-capacity FIFO of the most recent frames.

    Once full, every push evicts exactly the oldest frame. The writable flag
    guards against overlapping flushes: `begin_write()` is a check-and-set
    under the buffer lock and `end_write()` clears it.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = int(capacity)
        self._slots: list[BufferedFrame | None] = [None] * self._capacity
        self._head = 0
        self._length = 0
        self._next_seq = 0
        self._writable = True
        self._lock = threading.Lock()

    def push(self, frame: npt.NDArray[np.uint8]) -> BufferedFrame:
        """Copy `frame` into the buffer as the new tail.

        Raises:
            TransientFrameError: If the frame is empty or not 8-bit.
        """
        if frame is None or frame.size == 0 or frame.ndim < 2:
            raise TransientFrameError()
        if frame.dtype != np.uint8:
            raise TransientFrameError(f"Expected an 8-bit frame, got {frame.dtype}")

        # Copy outside the lock; only index bookkeeping is serialized.
        data = np.array(frame, copy=True, order="C")
        data.setflags(write=False)

        with self._lock:
            node = BufferedFrame(seq=self._next_seq, data=data)
            self._next_seq += 1
            if self._length < self._capacity:
                tail = (self._head + self._length) % self._capacity
                self._slots[tail] = node
                self._length += 1
            else:
                # Full: the tail slot is the current head; overwrite and advance.
                self._slots[self._head] = node
                self._head = (self._head + 1) % self._capacity
        return node

    def first(self) -> BufferedFrame | None:
        with self._lock:
            if self._length == 0:
                return None
            return self._slots[self._head]

    def last(self) -> BufferedFrame | None:
        with self._lock:
            if self._length == 0:
                return None
            return self._slots[(self._head + self._length - 1) % self._capacity]

    def length(self) -> int:
        with self._lock:
            return self._length

    def capacity(self) -> int:
        return self._capacity

    def is_writable(self) -> bool:
        with self._lock:
            return self._writable

    def begin_write(self) -> bool:
        """Mark a flush as pending. Returns False if one already is."""
        with self._lock:
            if not self._writable:
                return False
            self._writable = False
            return True

    def end_write(self) -> None:
        with self._lock:
            self._writable = True

    def snapshot(self) -> BufferSnapshot:
        """Return the current frames head-to-tail."""
        with self._lock:
            nodes = tuple(
                self._slots[(self._head + i) % self._capacity] for i in range(self._length)
            )
        return BufferSnapshot(nodes)  # type: ignore[arg-type]

    def __len__(self) -> int:
        return self.length()

    def __iter__(self) -> Iterator[BufferedFrame]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return (
            f"RingBuffer(length={self._length}, capacity={self._capacity}, "
            f"writable={self._writable})"
        )
