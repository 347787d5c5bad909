"""
Observation layer for pluggable video sources.

This layer abstracts the source of frames (webcam, video file) from the
processing pipeline. Each source implements the ObservationSource interface
and returns FrameData objects.
"""

from typing import Any, Dict

from .base import ObservationSource, ObservationConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig
from .threaded import ThreadedSource, ThreadedSourceConfig


def create_source_from_config(
    camera_cfg: Dict[str, Any],
    source_id: str = "camera",
    threaded: bool = True,
) -> ObservationSource:
    """
    Factory: build an observation source from the camera config dict.

    Only the "opencv" backend is available; the source is wrapped in a
    ThreadedSource unless ``threaded`` is False.
    """
    backend = camera_cfg.get("backend", "opencv")
    if backend != "opencv":
        raise ValueError(f"Unsupported camera backend: {backend}")

    source: ObservationSource = OpenCVSource(
        OpenCVSourceConfig.from_camera_config(camera_cfg, source_id=source_id)
    )
    if threaded:
        source = ThreadedSource(source, ThreadedSourceConfig(source_id=source_id))
    return source


__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "ThreadedSource",
    "ThreadedSourceConfig",
    "create_source_from_config",
]
