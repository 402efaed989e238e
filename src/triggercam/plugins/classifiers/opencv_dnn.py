"""OpenCV DNN image classifier plugin."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import cv2
import numpy as np
import numpy.typing as npt
from pydantic import BaseModel, Field, field_validator

from triggercam.interfaces import Classifier
from triggercam.plugins.registry import PluginType, plugin

logger = logging.getLogger(__name__)

_BACKENDS = {
    "default": "DNN_BACKEND_DEFAULT",
    "opencv": "DNN_BACKEND_OPENCV",
    "openvino": "DNN_BACKEND_INFERENCE_ENGINE",
    "halide": "DNN_BACKEND_HALIDE",
    "vulkan": "DNN_BACKEND_VKCOM",
    "cuda": "DNN_BACKEND_CUDA",
}

_TARGETS = {
    "cpu": "DNN_TARGET_CPU",
    "opencl": "DNN_TARGET_OPENCL",
    "opencl_fp16": "DNN_TARGET_OPENCL_FP16",
    "myriad": "DNN_TARGET_MYRIAD",
    "vulkan": "DNN_TARGET_VULKAN",
    "fpga": "DNN_TARGET_FPGA",
    "cuda": "DNN_TARGET_CUDA",
    "cuda_fp16": "DNN_TARGET_CUDA_FP16",
}


class OpenCVDnnSettings(BaseModel):
    """Settings for a single-output classification network."""

    model_config = {"extra": "forbid"}

    model_path: str
    config_path: str = ""
    backend: str = "default"
    target: str = "cpu"
    input_size: int = Field(default=224, ge=1)
    input_layer: str | None = "input"
    output_layer: str | None = "softmax2"
    scale: float = Field(default=1.0, gt=0.0)
    mean: tuple[float, float, float] = (0.0, 0.0, 0.0)
    swap_rb: bool = True

    @field_validator("backend")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        name = value.lower()
        if name not in _BACKENDS:
            raise ValueError(f"Unknown DNN backend '{value}'. Available: {', '.join(_BACKENDS)}")
        return name

    @field_validator("target")
    @classmethod
    def _check_target(cls, value: str) -> str:
        name = value.lower()
        if name not in _TARGETS:
            raise ValueError(f"Unknown DNN target '{value}'. Available: {', '.join(_TARGETS)}")
        return name


def _dnn_constant(name: str) -> int:
    value = getattr(cv2.dnn, name, None)
    if value is None:
        raise ValueError(f"OpenCV build does not provide cv2.dnn.{name}")
    return int(value)


@plugin(plugin_type=PluginType.CLASSIFIER, name="opencv_dnn")
class OpenCVDnnClassifier(Classifier):
    """Classifies frames with a network loaded by cv2.dnn.readNet.

    Each frame is resized to a square blob, run forward through the network
    and reduced to the index of the highest-scoring output.
    """

    config_cls = OpenCVDnnSettings

    @classmethod
    def create(cls, config: OpenCVDnnSettings) -> Classifier:
        return cls(config)

    def __init__(self, config: OpenCVDnnSettings) -> None:
        model_path = Path(config.model_path).expanduser()
        if not model_path.exists():
            raise FileNotFoundError(f"Model not found: {model_path}")

        self._settings = config
        self._net: Any = cv2.dnn.readNet(str(model_path), config.config_path)
        if self._net.empty():
            raise ValueError(f"Error reading network model: {model_path}")
        self._net.setPreferableBackend(_dnn_constant(_BACKENDS[config.backend]))
        self._net.setPreferableTarget(_dnn_constant(_TARGETS[config.target]))

        logger.info(
            "OpenCVDnnClassifier initialized: model=%s, backend=%s, target=%s",
            model_path,
            config.backend,
            config.target,
        )

    def classify(self, frame: npt.NDArray[np.uint8]) -> int:
        image = frame
        if image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)

        size = self._settings.input_size
        blob = cv2.dnn.blobFromImage(
            image,
            self._settings.scale,
            (size, size),
            self._settings.mean,
            self._settings.swap_rb,
            False,
        )
        if self._settings.input_layer:
            self._net.setInput(blob, self._settings.input_layer)
        else:
            self._net.setInput(blob)

        if self._settings.output_layer:
            prob = self._net.forward(self._settings.output_layer)
        else:
            prob = self._net.forward()

        return int(np.argmax(prob.reshape(1, -1)))
