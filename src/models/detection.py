"""
Detection models for object detection results.

Bounding boxes coming out of the detector are normalized to the image size
(origin at the top-left corner); pixel-space values are derived on demand
for a given image size.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class Point:
    """A point in pixel coordinates."""
    x: float
    y: float

    def as_int_tuple(self) -> Tuple[int, int]:
        """Return the pixel the point falls in (coordinates truncated toward zero)."""
        return (int(self.x), int(self.y))


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box normalized to the image size.

    Attributes:
        x: Left edge as a fraction of image width.
        y: Top edge as a fraction of image height.
        width: Box width as a fraction of image width.
        height: Box height as a fraction of image height.
    """
    x: float
    y: float
    width: float
    height: float

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def mid_x(self) -> float:
        return self.x + self.width / 2

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2

    def pixel_size(self, image_size: Tuple[int, int]) -> Tuple[float, float]:
        """Return (width, height) in pixels for an image of (width, height)."""
        w, h = image_size
        return (self.width * w, self.height * h)

    def center_in(self, image_size: Tuple[int, int]) -> Point:
        """Return the box midpoint in pixels for an image of (width, height)."""
        w, h = image_size
        return Point(x=self.mid_x * w, y=self.mid_y * h)

    def to_pixels(self, image_size: Tuple[int, int]) -> Tuple[int, int, int, int]:
        """Return integer (x1, y1, x2, y2) pixel corners."""
        w, h = image_size
        return (
            int(self.x * w),
            int(self.y * h),
            int(self.x2 * w),
            int(self.y2 * h),
        )

    @classmethod
    def from_xyxyn(cls, x1: float, y1: float, x2: float, y2: float) -> "BoundingBox":
        """Create from normalized corner coordinates, clamped to [0, 1]."""
        x1, y1 = _clamp(x1), _clamp(y1)
        x2, y2 = _clamp(x2), _clamp(y2)
        return cls(x=x1, y=y1, width=max(0.0, x2 - x1), height=max(0.0, y2 - y1))


@dataclass(frozen=True)
class Detection:
    """
    A single detection from the object detector.

    Attributes:
        label: Class label reported by the model (e.g. "Blue Ball").
        confidence: Detection confidence score (0-1).
        bbox: Normalized bounding box.
    """
    label: str
    confidence: float
    bbox: BoundingBox

    def to_dict(self) -> Dict[str, object]:
        return {
            "label": self.label,
            "confidence": self.confidence,
            "bbox": {
                "x": self.bbox.x,
                "y": self.bbox.y,
                "width": self.bbox.width,
                "height": self.bbox.height,
            },
        }


@dataclass(frozen=True)
class FilteredDetection:
    """A detection that passed the size filter, with its pixel-space center."""
    detection: Detection
    center: Point

    @property
    def label(self) -> str:
        return self.detection.label

    @property
    def confidence(self) -> float:
        return self.detection.confidence

    @property
    def bbox(self) -> BoundingBox:
        return self.detection.bbox

    def to_dict(self) -> Dict[str, object]:
        d = self.detection.to_dict()
        d["center"] = {"x": self.center.x, "y": self.center.y}
        return d


def _clamp(v: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, float(v)))
