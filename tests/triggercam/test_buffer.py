"""Tests for the ring buffer."""

from __future__ import annotations

import threading

import numpy as np
import pytest

from tests.triggercam.mocks import frame_value, make_frame
from triggercam.buffer import RingBuffer
from triggercam.errors import TransientFrameError


def _values(buffer: RingBuffer) -> list[int]:
    return [frame_value(node.data) for node in buffer.snapshot()]


class TestPushAndEviction:
    """Capacity and FIFO eviction behavior."""

    def test_fills_then_evicts_oldest(self) -> None:
        """Pushing past capacity replaces the head with the next-oldest frame."""
        # Given: a buffer of capacity 4 holding A, B, C, D
        buffer = RingBuffer(4)
        a, b, c, d, e = (make_frame(v) for v in (10, 11, 12, 13, 14))
        for frame in (a, b, c, d):
            buffer.push(frame)

        # Then: it is full and A is first
        assert buffer.length() == 4
        first = buffer.first()
        assert first is not None
        assert frame_value(first.data) == 10

        # When: pushing E
        buffer.push(e)

        # Then: B is first, E is last, and the length is unchanged
        first = buffer.first()
        last = buffer.last()
        assert first is not None and last is not None
        assert frame_value(first.data) == 11
        assert frame_value(last.data) == 14
        assert buffer.length() == 4
        assert _values(buffer) == [11, 12, 13, 14]

    @pytest.mark.parametrize("capacity", [1, 2, 3, 7])
    @pytest.mark.parametrize("pushes", [0, 1, 5, 23])
    def test_length_never_exceeds_capacity(self, capacity: int, pushes: int) -> None:
        """Length stays within capacity at every step."""
        buffer = RingBuffer(capacity)
        for i in range(pushes):
            buffer.push(make_frame(i))
            assert buffer.length() <= buffer.capacity()
            assert buffer.length() == min(i + 1, capacity)
            assert buffer.first() is not None

    def test_each_push_at_capacity_evicts_exactly_the_oldest(self) -> None:
        """Eviction removes the oldest node, identified by object identity."""
        # Given: a full buffer
        buffer = RingBuffer(3)
        for i in range(3):
            buffer.push(make_frame(i))

        for i in range(3, 12):
            before = list(buffer.snapshot())

            # When: pushing one more frame
            pushed = buffer.push(make_frame(i))

            # Then: the result is the previous nodes minus the oldest, plus the new one
            after = list(buffer.snapshot())
            assert len(after) == 3
            assert all(x is y for x, y in zip(after[:-1], before[1:]))
            assert after[-1] is pushed
            assert before[0] not in after

    def test_empty_buffer_has_no_first(self) -> None:
        buffer = RingBuffer(2)
        assert buffer.first() is None
        assert buffer.last() is None
        assert buffer.length() == 0
        assert len(buffer.snapshot()) == 0

    def test_rejects_non_positive_capacity(self) -> None:
        with pytest.raises(ValueError):
            RingBuffer(0)

    @pytest.mark.parametrize(
        "frame",
        [np.zeros((0, 0, 3), dtype=np.uint8), np.zeros(5, dtype=np.uint8)],
    )
    def test_rejects_empty_frames(self, frame: np.ndarray) -> None:
        """Empty or malformed frames are transient errors and are not buffered."""
        buffer = RingBuffer(2)
        with pytest.raises(TransientFrameError):
            buffer.push(frame)
        assert buffer.length() == 0

    @pytest.mark.parametrize("dtype", [np.uint16, np.float32, np.int8])
    def test_rejects_frames_that_are_not_8_bit(self, dtype: type) -> None:
        # Given: a frame whose values do not fit in uint8
        buffer = RingBuffer(2)
        frame = np.full((4, 4, 3), 300, dtype=np.uint16).astype(dtype)

        # When/Then: it is refused rather than silently converted
        with pytest.raises(TransientFrameError, match="8-bit"):
            buffer.push(frame)
        assert buffer.length() == 0

    def test_stored_frame_matches_pushed_frame(self) -> None:
        buffer = RingBuffer(2)
        frame = np.arange(4 * 4 * 3, dtype=np.uint8).reshape(4, 4, 3)

        buffer.push(frame)

        stored = buffer.snapshot()[0].data
        assert stored.dtype == np.uint8
        assert np.array_equal(stored, frame)

    def test_sequence_numbers_increase(self) -> None:
        buffer = RingBuffer(2)
        seqs = [buffer.push(make_frame(i)).seq for i in range(5)]
        assert seqs == [0, 1, 2, 3, 4]


class TestFrameCopies:
    """Buffered frames are private copies."""

    def test_mutating_source_frame_does_not_change_buffered_data(self) -> None:
        # Given: a frame pushed into the buffer
        buffer = RingBuffer(2)
        source = make_frame(42)
        node = buffer.push(source)

        # When: the source array is reused for the next capture
        source[...] = 7

        # Then: the buffered copy is unchanged
        assert frame_value(node.data) == 42
        assert int(node.data.max()) == 42

    def test_buffered_data_is_read_only(self) -> None:
        buffer = RingBuffer(1)
        node = buffer.push(make_frame(1))
        with pytest.raises(ValueError):
            node.data[0, 0, 0] = 9

    def test_node_reports_dimensions(self) -> None:
        buffer = RingBuffer(1)
        node = buffer.push(make_frame(1, width=16, height=9))
        assert (node.width, node.height) == (16, 9)


class TestSnapshot:
    """Snapshots for flush consumption."""

    def test_snapshot_is_insertion_ordered_and_restartable(self) -> None:
        buffer = RingBuffer(5)
        for i in range(8):
            buffer.push(make_frame(i))

        snapshot = buffer.snapshot()

        first_pass = [frame_value(f) for f in snapshot.frames()]
        second_pass = [frame_value(f) for f in snapshot.frames()]
        assert first_pass == [3, 4, 5, 6, 7]
        assert second_pass == first_pass
        assert [node.seq for node in snapshot] == [3, 4, 5, 6, 7]

    def test_snapshot_unaffected_by_later_pushes(self) -> None:
        """A snapshot keeps its frames even after they are evicted from the buffer."""
        # Given: a snapshot of a full buffer
        buffer = RingBuffer(3)
        for i in range(3):
            buffer.push(make_frame(i))
        snapshot = buffer.snapshot()

        # When: the buffer wraps around completely
        for i in range(3, 9):
            buffer.push(make_frame(i))

        # Then: the snapshot still holds the original frames
        assert [frame_value(f) for f in snapshot.frames()] == [0, 1, 2]
        assert _values(buffer) == [6, 7, 8]

    def test_snapshot_dimensions_come_from_frames(self) -> None:
        buffer = RingBuffer(2)
        assert buffer.snapshot().width is None
        buffer.push(make_frame(1, width=10, height=4))
        snapshot = buffer.snapshot()
        assert (snapshot.width, snapshot.height) == (10, 4)

    def test_snapshot_slicing(self) -> None:
        buffer = RingBuffer(4)
        for i in range(4):
            buffer.push(make_frame(i))
        tail = buffer.snapshot()[2:]
        assert [frame_value(f) for f in tail.frames()] == [2, 3]

    def test_iterating_buffer_uses_snapshot(self) -> None:
        buffer = RingBuffer(2)
        for i in range(3):
            buffer.push(make_frame(i))
        assert [frame_value(node.data) for node in buffer] == [1, 2]
        assert len(buffer) == 2


class TestWritableFlag:
    """Flush exclusivity flag."""

    def test_begin_write_is_check_and_set(self) -> None:
        buffer = RingBuffer(2)
        assert buffer.is_writable()

        assert buffer.begin_write() is True
        assert buffer.is_writable() is False
        assert buffer.begin_write() is False

        buffer.end_write()
        assert buffer.is_writable() is True
        assert buffer.begin_write() is True

    def test_concurrent_begin_write_has_single_winner(self) -> None:
        """Only one of many racing threads acquires the write flag."""
        buffer = RingBuffer(2)
        barrier = threading.Barrier(16)
        wins: list[bool] = []
        lock = threading.Lock()

        def contend() -> None:
            barrier.wait()
            won = buffer.begin_write()
            with lock:
                wins.append(won)

        threads = [threading.Thread(target=contend) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert wins.count(True) == 1

    def test_pushes_continue_while_not_writable(self) -> None:
        buffer = RingBuffer(2)
        buffer.begin_write()
        for i in range(5):
            buffer.push(make_frame(i))
        assert _values(buffer) == [3, 4]
