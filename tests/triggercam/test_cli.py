"""Tests for CLI module."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import yaml

from triggercam.cli import TriggerCam, main
from triggercam.errors import DeviceError
from triggercam.models.clip import SessionStats


def _write_config(tmp_path: Path, **overrides: object) -> Path:
    data: dict[str, object] = {
        "camera_name": "porch",
        "recorder": {
            "target_label": 2,
            "output_template": str(tmp_path / "clips" / "recording_{number}.avi"),
        },
        "classifier": {
            "backend": "opencv_dnn",
            "config": {"model_path": "model.pb"},
        },
        "storage": {"backend": "local", "local": {"root": str(tmp_path / "archive")}},
    }
    data.update(overrides)
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestValidate:
    def test_prints_summary(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        # Given: a valid config file
        path = _write_config(tmp_path)

        # When: validating it
        TriggerCam().validate(str(path))

        # Then: the summary describes the session
        out = capsys.readouterr().out
        assert "Config valid" in out
        assert "Camera: porch" in out
        assert "Target label: 2" in out
        assert "(225 frames)" in out

    def test_invalid_config_exits(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("recorder:\n  output_template: clip.avi\n")

        with pytest.raises(SystemExit) as exc_info:
            TriggerCam().validate(str(path))

        assert exc_info.value.code == 1
        assert "Config invalid" in capsys.readouterr().err


class TestLabels:
    def test_marks_target_label(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        labels = tmp_path / "labels.txt"
        labels.write_text("background\ncat\ndog\n")
        path = _write_config(tmp_path, labels_path=str(labels))

        TriggerCam().labels(str(path))

        lines = capsys.readouterr().out.splitlines()
        assert lines == ["     0  background", "     1  cat", "*    2  dog"]

    def test_without_labels_path_exits(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path)

        with pytest.raises(SystemExit) as exc_info:
            TriggerCam().labels(str(path))

        assert exc_info.value.code == 1


class TestRun:
    def test_prints_session_summary(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        # Given: an application that records nothing
        path = _write_config(tmp_path)
        app = MagicMock()
        app.run.return_value = SessionStats(frames_pushed=30, triggers=0)
        app.clips = []

        # When: running the CLI command
        with (
            patch("triggercam.cli.Application", return_value=app),
            patch("triggercam.cli.configure_logging") as mock_logging,
        ):
            TriggerCam().run(str(path), log_level="DEBUG")

        # Then: logging is configured for the camera and stats are printed
        mock_logging.assert_called_once_with(log_level="DEBUG", camera_name="porch")
        assert "Frames: 30" in capsys.readouterr().out

    def test_device_error_exits_with_code_2(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path)
        app = MagicMock()
        app.run.side_effect = DeviceError("0", "failed to open")

        with (
            patch("triggercam.cli.Application", return_value=app),
            patch("triggercam.cli.configure_logging"),
            pytest.raises(SystemExit) as exc_info,
        ):
            TriggerCam().run(str(path))

        assert exc_info.value.code == 2


class TestUpload:
    def test_exits_nonzero_when_a_file_fails(self, tmp_path: Path) -> None:
        # Given: an upload pass with one failure
        path = _write_config(tmp_path)
        failed = MagicMock(ok=False, local_path=tmp_path / "a.avi", attempts=3, error="boom")
        app = MagicMock()
        app.upload = AsyncMock(return_value=[failed])

        # When/Then: the command exits with status 1
        with (
            patch("triggercam.cli.Application", return_value=app),
            patch("triggercam.cli.configure_logging"),
            pytest.raises(SystemExit) as exc_info,
        ):
            TriggerCam().upload(str(path))

        assert exc_info.value.code == 1


class TestMain:
    def test_invokes_fire(self) -> None:
        with patch("triggercam.cli.fire.Fire") as mock_fire, patch("sys.argv", ["triggercam"]):
            main()

        mock_fire.assert_called_once_with(TriggerCam)
