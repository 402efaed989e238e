"""Frame sources."""

from triggercam.sources.opencv import OpenCVFrameSource

__all__ = ["OpenCVFrameSource"]
