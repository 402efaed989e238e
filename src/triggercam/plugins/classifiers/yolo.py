"""YOLO image classification plugin (ultralytics)."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt
import torch
from pydantic import BaseModel, Field
from ultralytics import YOLO  # type: ignore[attr-defined]

from triggercam.interfaces import Classifier
from triggercam.plugins.registry import PluginType, plugin

logger = logging.getLogger(__name__)

_YOLO_CACHE_DIR = Path.cwd() / "yolo_cache"


class YoloClassifierSettings(BaseModel):
    """Settings for an ultralytics `-cls` model."""

    model_config = {"extra": "forbid"}

    model_path: str = "yolo11n-cls.pt"
    device: str | None = None
    imgsz: int = Field(default=224, ge=32)


def _resolve_model_path(model_path: str) -> str:
    """Bare filenames resolve under ./yolo_cache; ultralytics downloads them if missing."""
    requested = Path(model_path)
    if not requested.is_absolute() and requested.parent == Path("."):
        cached = _YOLO_CACHE_DIR / requested.name
        if cached.exists():
            return str(cached)
        return requested.name
    if not requested.exists():
        raise FileNotFoundError(f"Model not found: {requested}")
    return str(requested)


def _default_device() -> str:
    return (
        "mps"
        if torch.backends.mps.is_available()
        else "cuda"
        if torch.cuda.is_available()
        else "cpu"
    )


@plugin(plugin_type=PluginType.CLASSIFIER, name="yolo")
class YoloClassifier(Classifier):
    """Top-1 image classification with a YOLO classification model."""

    config_cls = YoloClassifierSettings

    @classmethod
    def create(cls, config: YoloClassifierSettings) -> Classifier:
        return cls(config)

    def __init__(self, config: YoloClassifierSettings) -> None:
        self._settings = config
        self._device = config.device or _default_device()
        model_ref = _resolve_model_path(config.model_path)
        self._model = YOLO(model_ref).to(self._device)
        if self._model.task != "classify":
            raise ValueError(f"Model {model_ref} is a '{self._model.task}' model, expected 'classify'")

        logger.info(
            "YoloClassifier initialized: model=%s, device=%s, imgsz=%d",
            model_ref,
            self._device,
            config.imgsz,
        )

    @property
    def names(self) -> dict[int, str]:
        return dict(self._model.names)

    def classify(self, frame: npt.NDArray[np.uint8]) -> int:
        results = self._model(frame, verbose=False, imgsz=self._settings.imgsz)
        probs = results[0].probs
        if probs is None:
            raise RuntimeError("Model returned no classification probabilities")
        return int(probs.top1)
