"""
Ultralytics YOLO backend.

Ultralytics picks the device itself (CPU unless a GPU is available). It is
imported when the backend is built, so the rest of the application runs
without it installed and a missing package surfaces as a model load failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import numpy as np

from models.detection import BoundingBox, Detection
from .backend import InferenceBackend


@dataclass(frozen=True)
class CpuYoloConfig:
    model: str
    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    class_name_overrides: Optional[Dict[int, str]] = None


def _as_array(values: Any) -> np.ndarray:
    # torch tensors live on the inference device
    if hasattr(values, "cpu"):
        values = values.cpu().numpy()
    return np.asarray(values)


class UltralyticsCpuBackend(InferenceBackend):
    def __init__(self, cfg: CpuYoloConfig):
        try:
            from ultralytics import YOLO  # type: ignore
        except ImportError as e:
            raise ImportError(
                "Ultralytics is not installed. Install with `pip install ball-tracker[yolo]`."
            ) from e

        self.cfg = cfg
        self._overrides = dict(cfg.class_name_overrides or {})
        self._model = YOLO(cfg.model)

    def _label(self, class_id: int, names: Mapping[int, str]) -> str:
        return self._overrides.get(class_id) or names.get(class_id) or str(class_id)

    def detect(self, frame: np.ndarray) -> List[Detection]:
        results = self._model.predict(
            source=frame,
            conf=self.cfg.conf_threshold,
            iou=self.cfg.iou_threshold,
            verbose=False,
        )
        if not results:
            return []

        result = results[0]
        boxes = getattr(result, "boxes", None)
        if boxes is None:
            return []
        names = getattr(result, "names", None) or {}

        return [
            Detection(
                label=self._label(int(class_id), names),
                confidence=float(score),
                bbox=BoundingBox.from_xyxyn(*(float(v) for v in xyxyn)),
            )
            for xyxyn, score, class_id in zip(
                _as_array(boxes.xyxyn), _as_array(boxes.conf), _as_array(boxes.cls)
            )
        ]
