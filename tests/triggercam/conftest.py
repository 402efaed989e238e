"""Shared pytest fixtures for triggercam tests."""

from __future__ import annotations

import sys
from pathlib import Path

# Add src to sys.path for imports
src_path = Path(__file__).parent.parent.parent / "src"
if str(src_path.resolve()) not in sys.path:
    sys.path.insert(0, str(src_path.resolve()))

import pytest

from triggercam.models.config import RecorderConfig
from tests.triggercam.mocks import MemorySinkFactory


@pytest.fixture
def clip_template(tmp_path: Path) -> str:
    return str(tmp_path / "clips" / "recording_{number}.avi")


@pytest.fixture
def recorder_config(clip_template: str) -> RecorderConfig:
    """Target label 5, 4-frame buffer (2 fps x 2s window), 1s post-trigger delay."""
    return RecorderConfig(
        target_label=5,
        record_window_s=2.0,
        fps=2.0,
        output_template=clip_template,
    )


@pytest.fixture
def sink_factory() -> MemorySinkFactory:
    return MemorySinkFactory()
