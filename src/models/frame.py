"""
Captured camera frame.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class FrameData:
    """
    One BGR image handed from a frame source to the pipeline.

    The image is shared, not copied: nothing downstream of the source may
    draw on it. Overlays work on a copy (see pipeline.overlay).

    Attributes:
        frame: HxWx3 uint8 image.
        timestamp: Capture time (unix seconds).
        frame_index: 1-based count of frames read since the source was opened.
        source: Id of the source that produced the frame.
    """
    frame: np.ndarray
    timestamp: float = field(default_factory=time.time)
    frame_index: int = 0
    source: Optional[str] = None

    def __post_init__(self):
        if self.frame.ndim < 2:
            raise ValueError(f"Frame must be a 2D or 3D image, got shape {self.frame.shape}")

    @classmethod
    def from_numpy(
        cls,
        frame: np.ndarray,
        timestamp: Optional[float] = None,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "FrameData":
        return cls(
            frame=frame,
            timestamp=time.time() if timestamp is None else timestamp,
            frame_index=frame_index,
            source=source,
        )

    @property
    def width(self) -> int:
        return int(self.frame.shape[1])

    @property
    def height(self) -> int:
        return int(self.frame.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) in pixels, the order the detection filter expects."""
        return (self.width, self.height)
