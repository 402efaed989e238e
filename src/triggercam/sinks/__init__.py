"""Video sinks."""

from triggercam.sinks.opencv import OpenCVVideoSink

__all__ = ["OpenCVVideoSink"]
