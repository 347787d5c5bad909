"""
Detector adapter.

Loads the inference backend once at startup. A backend that fails to load
leaves the adapter disabled for the rest of the process: detect() then
returns no detections instead of raising on every frame.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

import numpy as np

from inference.backend import InferenceBackend
from inference.cpu_backend import CpuYoloConfig, UltralyticsCpuBackend
from models.config import DetectionConfig
from models.detection import Detection

BackendFactory = Callable[[], InferenceBackend]


class DetectorAdapter:
    """Wraps an inference backend behind a load-once, never-raise detect()."""

    def __init__(self, factory: BackendFactory, name: str = "detector"):
        self._factory = factory
        self._name = name
        self._backend: Optional[InferenceBackend] = None
        self._load_error: Optional[str] = None
        self._loaded = False

    @classmethod
    def from_config(cls, cfg: DetectionConfig) -> "DetectorAdapter":
        yolo_cfg = CpuYoloConfig(
            model=cfg.model,
            conf_threshold=cfg.conf_threshold,
            iou_threshold=cfg.iou_threshold,
            class_name_overrides=cfg.class_name_overrides,
        )
        return cls(lambda: UltralyticsCpuBackend(yolo_cfg), name=cfg.model)

    @property
    def enabled(self) -> bool:
        return self._backend is not None

    @property
    def load_error(self) -> Optional[str]:
        return self._load_error

    def load(self) -> bool:
        """Build the backend. Only the first call does any work."""
        if self._loaded:
            return self.enabled
        self._loaded = True

        logging.info(f"Loading detection model: {self._name}")
        try:
            self._backend = self._factory()
        except Exception as e:
            self._load_error = f"{type(e).__name__}: {e}"
            logging.error(
                f"Failed to load detection model {self._name} ({self._load_error}); "
                "detection is disabled"
            )
            return False

        logging.info(f"Detection model loaded: {self._name}")
        return True

    def detect(self, frame: np.ndarray) -> List[Detection]:
        if self._backend is None:
            return []
        try:
            return list(self._backend.detect(frame))
        except Exception as e:
            logging.warning(f"Detection failed for frame: {e}")
            return []
