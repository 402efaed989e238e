"""Main application that wires all components together."""

from __future__ import annotations

import logging
import signal
import threading
from pathlib import Path
from types import FrameType
from typing import Any

from triggercam.buffer import RingBuffer
from triggercam.capture import CaptureLoop
from triggercam.clock import Clock
from triggercam.config import load_config, resolve_env_var
from triggercam.interfaces import Classifier, FrameSource, SinkFactory, VideoSink
from triggercam.labels import read_labels
from triggercam.models.clip import RecordedClip, SessionStats
from triggercam.models.config import Config
from triggercam.models.storage import FileSyncResult
from triggercam.plugins.classifiers import load_classifier_plugin
from triggercam.plugins.storage import load_storage_plugin
from triggercam.sinks.opencv import OpenCVVideoSink
from triggercam.sources.opencv import OpenCVFrameSource
from triggercam.trigger import TriggerController
from triggercam.uploader import Uploader

logger = logging.getLogger(__name__)


class Application:
    """Runs one capture session and owns its components.

    Components are built from config unless injected. The capture loop runs
    on the calling thread; SIGINT/SIGTERM request a graceful stop.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        config: Config | None = None,
        source: FrameSource | None = None,
        classifier: Classifier | None = None,
        sink_factory: SinkFactory | None = None,
        clock: Clock | None = None,
    ) -> None:
        if config_path is None and config is None:
            raise ValueError("config_path or config is required")
        self._config_path = config_path
        self._config = config
        self._source = source
        self._classifier = classifier
        self._sink_factory = sink_factory
        self._clock = clock

        self._stop_event = threading.Event()
        self._previous_handlers: dict[signal.Signals, Any] = {}
        self._clips: list[RecordedClip] = []
        self._clips_lock = threading.Lock()

    @property
    def config(self) -> Config:
        if self._config is None:
            assert self._config_path is not None
            self._config = load_config(self._config_path)
            logger.info("Config loaded from %s", self._config_path)
        return self._config

    @property
    def clips(self) -> list[RecordedClip]:
        with self._clips_lock:
            return list(self._clips)

    def request_shutdown(self) -> None:
        self._stop_event.set()

    def run(self) -> SessionStats:
        """Run a capture session until shutdown or device closure."""
        config = self.config
        logger.info("Starting triggercam session for camera %s", config.camera_name)

        source = self._source or OpenCVFrameSource(
            width=config.source.width, height=config.source.height
        )
        classifier = self._classifier or load_classifier_plugin(config.classifier)
        sink_factory = self._sink_factory or self._default_sink_factory(config)
        label_names = self._load_label_names(config, classifier)

        buffer = RingBuffer(config.recorder.capacity)
        controller = TriggerController(
            buffer=buffer,
            classifier=classifier,
            sink_factory=sink_factory,
            config=config.recorder,
            clock=self._clock,
            label_names=label_names,
            classifier_name=config.classifier.backend,
        )
        controller.register_callback(self._on_clip)

        loop = CaptureLoop(
            source=source,
            buffer=buffer,
            controller=controller,
            stop_event=self._stop_event,
            heartbeat_frames=int(config.recorder.fps * 60),
        )

        logger.info(
            "Buffering %d frames (%.1fs @ %.1f fps); target label %d",
            buffer.capacity(),
            config.recorder.record_window_s,
            config.recorder.fps,
            config.recorder.target_label,
        )

        self._setup_signal_handlers()
        try:
            source.open(self._resolve_device(config))
            try:
                stats = loop.run()
            finally:
                source.close()
        finally:
            self._restore_signal_handlers()
            classifier.close()

        logger.info(
            "Session ended: frames=%d clips=%d triggers=%d device_closed=%s",
            stats.frames_pushed,
            stats.clips_written,
            stats.triggers,
            stats.device_closed,
        )
        return stats

    async def upload(self, local_dir: Path | None = None) -> list[FileSyncResult]:
        """Run one upload pass over the clip directory."""
        config = self.config
        storage = load_storage_plugin(config.storage)
        uploader = Uploader(
            storage,
            max_attempts=config.upload.max_attempts,
            remote_prefix=config.upload.remote_prefix,
        )
        target_dir = local_dir or self._clip_dir(config)
        try:
            return await uploader.sync_detailed(target_dir, config.upload.extension)
        finally:
            await storage.shutdown()

    def _on_clip(self, clip: RecordedClip) -> None:
        with self._clips_lock:
            self._clips.append(clip)

    def _default_sink_factory(self, config: Config) -> SinkFactory:
        fourcc = config.recorder.fourcc

        def factory() -> VideoSink:
            return OpenCVVideoSink(fourcc=fourcc)

        return factory

    def _resolve_device(self, config: Config) -> str | int:
        if config.source.device_env:
            value = resolve_env_var(config.source.device_env)
            assert value is not None
            return value
        return config.source.device

    def _load_label_names(self, config: Config, classifier: Classifier) -> list[str]:
        if config.labels_path:
            return read_labels(Path(config.labels_path))
        names = getattr(classifier, "names", None)
        if isinstance(names, dict) and names:
            return [str(names.get(i, i)) for i in range(max(names) + 1)]
        return []

    @staticmethod
    def _clip_dir(config: Config) -> Path:
        if config.upload.local_dir:
            return Path(config.upload.local_dir)
        return Path(config.recorder.output_template).parent

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on main thread; skipping signal handlers")
            return
        for sig in (signal.SIGINT, signal.SIGTERM):
            self._previous_handlers[sig] = signal.getsignal(sig)
            signal.signal(sig, self._handle_signal)

    def _restore_signal_handlers(self) -> None:
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    def _handle_signal(self, signum: int, _frame: FrameType | None) -> None:
        name = signal.Signals(signum).name
        if self._stop_event.is_set():
            logger.warning("Shutdown already in progress, ignoring %s", name)
            return
        logger.info("Received signal %s, initiating shutdown...", name)
        self._stop_event.set()
