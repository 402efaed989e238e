"""Classification dispatch, trigger detection and delayed clip flushing."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

import numpy as np
import numpy.typing as npt

from triggercam.buffer import BufferSnapshot, RingBuffer
from triggercam.clock import Clock, SystemClock
from triggercam.errors import ClassifierError, SinkOpenError
from triggercam.interfaces import Classifier, SinkFactory
from triggercam.logging_setup import recording_context
from triggercam.models.clip import RecordedClip, SessionStats
from triggercam.models.config import CLIP_NUMBER_PLACEHOLDER, RecorderConfig

logger = logging.getLogger(__name__)


class ClassificationState(str, Enum):
    IDLE = "idle"
    CLASSIFYING = "classifying"


class ClipNamer:
    """Hands out clip paths numbered 1, 2, 3... for the life of the process."""

    def __init__(self, template: str, *, start: int = 1) -> None:
        if template.count(CLIP_NUMBER_PLACEHOLDER) != 1:
            raise ValueError(
                f"Clip template must contain exactly one {CLIP_NUMBER_PLACEHOLDER}: {template}"
            )
        self._template = template
        self._next = int(start)
        self._lock = threading.Lock()

    @property
    def template(self) -> str:
        return self._template

    def next_path(self) -> tuple[int, Path]:
        with self._lock:
            number = self._next
            self._next += 1
        return number, Path(self._template.replace(CLIP_NUMBER_PLACEHOLDER, str(number)))


class TriggerController:
    """Keeps at most one classification in flight and schedules clip flushes.

    `step()` runs on the capture thread after every push and never blocks.
    Classification runs on a single worker thread; flushes run on their own
    pool. A flush sleeps for half the record window so frames after the
    trigger land in the buffer, snapshots the buffer, re-opens the buffer for
    the next trigger, and then encodes the snapshot.
    """

    def __init__(
        self,
        *,
        buffer: RingBuffer,
        classifier: Classifier,
        sink_factory: SinkFactory,
        config: RecorderConfig,
        clock: Clock | None = None,
        namer: ClipNamer | None = None,
        label_names: Sequence[str] | None = None,
        classifier_name: str = "classifier",
    ) -> None:
        self._buffer = buffer
        self._classifier = classifier
        self._sink_factory = sink_factory
        self._config = config
        self._clock = clock or SystemClock()
        self._namer = namer or ClipNamer(config.output_template)
        self._label_names = list(label_names) if label_names else []
        self._classifier_name = classifier_name

        self._classify_executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="classify"
        )
        self._flush_executor = ThreadPoolExecutor(
            max_workers=config.flush_workers, thread_name_prefix="flush"
        )

        self._state = ClassificationState.IDLE
        self._pending: Future[int] | None = None
        self._flushes: set[Future[RecordedClip | None]] = set()
        self._flush_lock = threading.Lock()
        self._accepting = True
        self._drained = False
        self._callbacks: list[Callable[[RecordedClip], None]] = []

        self._stats_lock = threading.Lock()
        self._stats = SessionStats()

    @property
    def state(self) -> ClassificationState:
        return self._state

    @property
    def namer(self) -> ClipNamer:
        return self._namer

    @property
    def accepting(self) -> bool:
        return self._accepting

    def register_callback(self, callback: Callable[[RecordedClip], None]) -> None:
        """Register callback to be invoked when a clip has been written."""
        self._callbacks.append(callback)

    def stats(self) -> SessionStats:
        with self._stats_lock:
            return self._stats.model_copy()

    def pending_flushes(self) -> int:
        with self._flush_lock:
            return sum(1 for f in self._flushes if not f.done())

    def step(self, frame: npt.NDArray[np.uint8]) -> None:
        """Advance the trigger state machine for a freshly buffered frame.

        `frame` must not be mutated afterwards; pass the buffered copy.
        """
        if not self._accepting:
            return

        pending = self._pending
        if pending is not None:
            if not pending.done():
                return
            self._pending = None
            self._state = ClassificationState.IDLE
            label = self._consume_result(pending)
            if label is not None and label == self._config.target_label:
                self._on_match(label)

        self._dispatch(frame)

    def drain(self) -> None:
        """Stop dispatching and wait for outstanding classification and flushes.

        Blocks until every started clip is written; nothing is cancelled.
        """
        if self._drained:
            return
        self._accepting = False

        pending = self._pending
        if pending is not None:
            logger.info("Waiting for in-flight classification to finish")
            wait_futures([pending])
            # Results that arrive after shutdown never trigger a flush.
            self._consume_result(pending)
            self._pending = None
            self._state = ClassificationState.IDLE

        with self._flush_lock:
            flushes = [f for f in self._flushes if not f.done()]
        if flushes:
            logger.info("Waiting for %d clip flush(es) to finish", len(flushes))
            wait_futures(flushes)

        self._classify_executor.shutdown(wait=True, cancel_futures=False)
        self._flush_executor.shutdown(wait=True, cancel_futures=False)
        self._drained = True
        logger.info("Trigger controller drained")

    def _dispatch(self, frame: npt.NDArray[np.uint8]) -> None:
        self._state = ClassificationState.CLASSIFYING
        self._pending = self._classify_executor.submit(self._classify, frame)
        with self._stats_lock:
            self._stats.classifications += 1

    def _classify(self, frame: npt.NDArray[np.uint8]) -> int:
        try:
            return int(self._classifier.classify(frame))
        except Exception as exc:
            raise ClassifierError(self._classifier_name, exc) from exc

    def _consume_result(self, future: Future[int]) -> int | None:
        try:
            return future.result()
        except ClassifierError as exc:
            with self._stats_lock:
                self._stats.classification_failures += 1
            logger.warning("%s: %s", exc, exc.cause, exc_info=exc)
            return None

    def _on_match(self, label: int) -> None:
        with self._stats_lock:
            self._stats.triggers += 1

        if not self._buffer.begin_write():
            logger.debug("Matched %s again while a flush is pending; ignoring", self._describe(label))
            return

        triggered_at = datetime.now(timezone.utc)
        trigger_mono = self._clock.now()
        logger.info(
            "Matched %s; saving clip in %.1fs",
            self._describe(label),
            self._config.post_trigger_delay_s,
        )
        try:
            future = self._flush_executor.submit(self._flush, triggered_at, trigger_mono)
        except RuntimeError:
            self._buffer.end_write()
            raise
        with self._flush_lock:
            self._flushes = {f for f in self._flushes if not f.done()}
            self._flushes.add(future)
        with self._stats_lock:
            self._stats.flushes_scheduled += 1

    def _flush(self, triggered_at: datetime, trigger_mono: float) -> RecordedClip | None:
        try:
            try:
                self._clock.sleep(self._config.post_trigger_delay_s)
                snapshot = self._buffer.snapshot()
            finally:
                self._buffer.end_write()

            if not snapshot or snapshot.width is None or snapshot.height is None:
                logger.warning("Buffer empty at flush time; nothing to save")
                return None

            clip_number, path = self._namer.next_path()
            with recording_context(path.name):
                logger.info(
                    "Saving %d frames to %s (waited %.2fs)",
                    len(snapshot),
                    path,
                    self._clock.now() - trigger_mono,
                )
                clip = self._write_clip(snapshot, clip_number, path, triggered_at)
                if clip is not None:
                    self._emit_clip(clip)
                return clip
        except Exception:
            logger.exception("Clip flush failed")
            return None

    def _write_clip(
        self,
        snapshot: BufferSnapshot,
        clip_number: int,
        path: Path,
        triggered_at: datetime,
    ) -> RecordedClip | None:
        assert snapshot.width is not None and snapshot.height is not None
        sink = self._sink_factory()
        try:
            sink.open(path, self._config.fps, snapshot.width, snapshot.height)
        except SinkOpenError as exc:
            logger.error("Abandoning clip %s: %s", path, exc, exc_info=True)
            return None

        try:
            for frame in snapshot.frames():
                sink.write_frame(frame)
        finally:
            sink.close()

        with self._stats_lock:
            self._stats.clips_written += 1
        logger.info("Saved clip %s", path)
        return RecordedClip(
            clip_number=clip_number,
            path=path,
            frame_count=len(snapshot),
            first_seq=snapshot[0].seq,
            last_seq=snapshot[-1].seq,
            width=snapshot.width,
            height=snapshot.height,
            fps=self._config.fps,
            triggered_at=triggered_at,
            written_at=datetime.now(timezone.utc),
        )

    def _emit_clip(self, clip: RecordedClip) -> None:
        for callback in list(self._callbacks):
            try:
                callback(clip)
            except Exception as exc:
                logger.error(
                    "Callback failed for clip %s: %s",
                    clip.path,
                    exc,
                    exc_info=True,
                )

    def _describe(self, label: int) -> str:
        if 0 <= label < len(self._label_names):
            return f"label {label} ({self._label_names[label]})"
        return f"label {label}"
