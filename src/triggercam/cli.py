"""Command line interface: `triggercam run|validate|upload|labels`."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import NoReturn

from dotenv import load_dotenv

load_dotenv()

import fire  # type: ignore[import-untyped]

from triggercam.app import Application
from triggercam.config import ConfigError, load_config
from triggercam.errors import DeviceError
from triggercam.labels import read_labels
from triggercam.logging_setup import configure_logging
from triggercam.models.config import Config

EXIT_CONFIG = 1
EXIT_DEVICE = 2


def _fail(message: str, code: int = EXIT_CONFIG) -> NoReturn:
    print(f"✗ {message}", file=sys.stderr)
    sys.exit(code)


def _load_or_exit(config_path: Path) -> Config:
    try:
        return load_config(config_path)
    except ConfigError as e:
        _fail(f"Config invalid: {e}")


class TriggerCam:
    """Record clips from a camera whenever the classifier sees the target label."""

    def run(self, config: str, log_level: str = "INFO") -> None:
        """Capture until Ctrl-C or until the device stops delivering frames.

        Exits with status 1 on a bad config and 2 when the device cannot be
        opened.

        Args:
            config: Path to YAML config file
            log_level: DEBUG, INFO, WARNING or ERROR
        """
        config_path = Path(config)
        cfg = _load_or_exit(config_path)
        configure_logging(log_level=log_level, camera_name=cfg.camera_name)

        app = Application(config_path, config=cfg)
        try:
            stats = app.run()
        except ConfigError as e:
            _fail(f"Config invalid: {e}")
        except DeviceError as e:
            _fail(str(e), EXIT_DEVICE)

        print(
            f"Frames: {stats.frames_pushed}  Triggers: {stats.triggers}  "
            f"Clips: {stats.clips_written}"
        )
        for clip in app.clips:
            print(f"  {clip.path} ({clip.frame_count} frames)")

    def validate(self, config: str) -> None:
        """Check a config file, including plugin settings, and summarize it.

        Args:
            config: Path to YAML config file
        """
        config_path = Path(config)
        cfg = _load_or_exit(config_path)
        rec = cfg.recorder
        device = cfg.source.device_env or cfg.source.device

        print(f"✓ Config valid: {config_path}")
        for key, value in (
            ("Camera", cfg.camera_name),
            ("Source", f"{cfg.source.backend} ({device})"),
            ("Classifier", cfg.classifier.backend),
            ("Target label", rec.target_label),
            ("Window", f"{rec.record_window_s}s @ {rec.fps} fps ({rec.capacity} frames)"),
            ("Output", rec.output_template),
            ("Storage backend", cfg.storage.backend),
        ):
            print(f"  {key}: {value}")

    def upload(self, config: str, local_dir: str | None = None, log_level: str = "INFO") -> None:
        """Push finished clips to storage, retrying each file a few times.

        Exits with status 1 if any file could not be uploaded.

        Args:
            config: Path to YAML config file
            local_dir: Directory to sync instead of the clip output directory
            log_level: DEBUG, INFO, WARNING or ERROR
        """
        configure_logging(log_level=log_level)
        app = Application(Path(config))
        try:
            results = asyncio.run(app.upload(Path(local_dir) if local_dir else None))
        except ConfigError as e:
            _fail(f"Config invalid: {e}")

        for result in results:
            if result.ok:
                print(f"✓ {result.local_path} -> {result.storage_uri}")
            else:
                print(f"✗ {result.local_path} after {result.attempts} attempt(s): {result.error}")
        if not all(result.ok for result in results):
            sys.exit(EXIT_CONFIG)

    def labels(self, config: str) -> None:
        """List label indices, marking the configured target with `*`.

        Args:
            config: Path to YAML config file
        """
        cfg = _load_or_exit(Path(config))
        if not cfg.labels_path:
            _fail("No labels_path configured")
        try:
            names = read_labels(Path(cfg.labels_path))
        except ConfigError as e:
            _fail(str(e))

        for index, name in enumerate(names):
            marker = "*" if index == cfg.recorder.target_label else " "
            print(f"{marker}{index:5d}  {name}")


def main() -> None:
    # Bare --help would otherwise be treated as an argument to the class.
    if sys.argv[1:] in (["--help"], ["-h"]):
        sys.argv.pop()
    fire.Fire(TriggerCam)


if __name__ == "__main__":
    main()
