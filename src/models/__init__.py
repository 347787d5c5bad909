"""
Typed models for the ball tracker.
"""

from .frame import FrameData
from .detection import BoundingBox, Detection, FilteredDetection, Point
from .config import (
    Config,
    CameraConfig,
    DetectionConfig,
    FilterConfig,
    RecordingConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "BoundingBox",
    "Detection",
    "FilteredDetection",
    "Point",
    # Config
    "Config",
    "CameraConfig",
    "DetectionConfig",
    "FilterConfig",
    "RecordingConfig",
    "WebConfig",
]
