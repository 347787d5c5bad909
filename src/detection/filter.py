"""
Size filter and per-label center aggregation.

Detections whose pixel-space box is larger than the configured maximum in
either dimension are dropped. Of the remaining detections, one per label is
kept: the highest-confidence one, with ties going to the earlier entry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from models.detection import Detection, FilteredDetection, Point

DEFAULT_MAX_BOX_SIZE = 90.0


@dataclass(frozen=True)
class FilterResult:
    detections: List[FilteredDetection] = field(default_factory=list)
    centers: Dict[str, Point] = field(default_factory=dict)


class DetectionFilter:
    def __init__(
        self,
        max_width: float = DEFAULT_MAX_BOX_SIZE,
        max_height: float = DEFAULT_MAX_BOX_SIZE,
    ):
        self.max_width = max_width
        self.max_height = max_height

    def accepts(self, detection: Detection, image_size: Tuple[int, int]) -> bool:
        w, h = detection.bbox.pixel_size(image_size)
        return w <= self.max_width and h <= self.max_height

    def filter(self, detections: Iterable[Detection], image_size: Tuple[int, int]) -> FilterResult:
        """
        Args:
            detections: Detections for one frame, in any order.
            image_size: (width, height) of the frame in pixels.
        """
        best: Dict[str, FilteredDetection] = {}
        for det in detections:
            if not self.accepts(det, image_size):
                continue
            current = best.get(det.label)
            if current is not None and det.confidence <= current.confidence:
                continue
            best[det.label] = FilteredDetection(
                detection=det,
                center=det.bbox.center_in(image_size),
            )

        return FilterResult(
            detections=list(best.values()),
            centers={label: fd.center for label, fd in best.items()},
        )
