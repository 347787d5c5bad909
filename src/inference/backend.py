"""
Inference backend interface.
"""

from __future__ import annotations

from typing import List, Protocol

import numpy as np

from models.detection import Detection


class InferenceBackend(Protocol):
    def detect(self, frame: np.ndarray) -> List[Detection]:
        """Detections for one BGR frame, boxes normalized to the frame size (top-left origin)."""
        ...
