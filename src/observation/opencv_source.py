"""
OpenCV capture source for webcams and video files.

``device_id`` is either a camera index (0 is the first available camera) or
the path of a video file. Files end when they run out of frames; cameras
are reconnected a few times before the source gives up.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

import cv2
import numpy as np

from models.frame import FrameData
from .base import ObservationSource, ObservationConfig

Transform = Callable[[np.ndarray], np.ndarray]

_ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Attributes:
        device_id: Camera index (int) or video file path (str).
        buffer_size: Driver-side frame buffer; 1 keeps latency low.
        max_retries: Attempts to open the device before giving up.
        max_read_failures: Failed camera reads in a row before the source is exhausted.
        rotate: Clockwise rotation in degrees (0, 90, 180, 270).
        flip_horizontal: Mirror left/right.
        flip_vertical: Mirror top/bottom.
        warmup_s: Pause after opening a live camera.
    """
    device_id: Union[int, str] = 0
    buffer_size: int = 1
    max_retries: int = 3
    max_read_failures: int = 3
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False
    warmup_s: float = 0.5

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any], source_id: str = "camera") -> "OpenCVSourceConfig":
        """Build from the ``camera`` section of config.yaml."""
        resolution = camera_cfg.get("resolution")
        return cls(
            source_id=source_id,
            resolution=tuple(resolution) if resolution else None,
            fps=camera_cfg.get("fps"),
            device_id=camera_cfg.get("device_id", 0),
            buffer_size=camera_cfg.get("buffer_size", 1),
            max_retries=camera_cfg.get("max_retries", 3),
            rotate=camera_cfg.get("rotate") or 0,
            flip_horizontal=bool(camera_cfg.get("flip_horizontal", False)),
            flip_vertical=bool(camera_cfg.get("flip_vertical", False)),
        )


def _build_transforms(cfg: OpenCVSourceConfig) -> List[Transform]:
    transforms: List[Transform] = []

    rotation = _ROTATIONS.get(cfg.rotate)
    if rotation is not None:
        transforms.append(lambda img: cv2.rotate(img, rotation))

    if cfg.flip_horizontal and cfg.flip_vertical:
        transforms.append(lambda img: cv2.flip(img, -1))
    elif cfg.flip_horizontal:
        transforms.append(lambda img: cv2.flip(img, 1))
    elif cfg.flip_vertical:
        transforms.append(lambda img: cv2.flip(img, 0))

    return transforms


class OpenCVSource(ObservationSource):
    """
    cv2.VideoCapture wrapped as an ObservationSource.

    Example:
        with OpenCVSource(OpenCVSourceConfig(device_id=0)) as source:
            for frame_data in source:
                ...
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._read_failures = 0
        self._transforms = _build_transforms(config)

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    @property
    def is_file(self) -> bool:
        return isinstance(self.device_id, str) and os.path.exists(self.device_id)

    def open(self) -> None:
        """
        Open the device, retrying with backoff.

        Raises:
            RuntimeError: If the device cannot be opened after max_retries attempts.
        """
        if self._is_open:
            return

        self._connect()
        self._is_open = True
        self._exhausted = False
        self._frame_index = 0
        logging.info(
            f"OpenCVSource opened: source_id={self.source_id}, "
            f"device={self.device_id}, resolution={self._opencv_config.resolution}"
        )

    def _connect(self) -> None:
        cfg = self._opencv_config
        self._release()

        attempts = max(1, cfg.max_retries)
        for attempt in range(1, attempts + 1):
            cap = cv2.VideoCapture(self.device_id)
            if cap.isOpened():
                self._cap = cap
                break
            cap.release()
            if attempt < attempts:
                delay = min(2 ** attempt, 10)
                logging.warning(
                    f"Failed to open device {self.device_id} (attempt {attempt}/{attempts}), "
                    f"retrying in {delay}s"
                )
                time.sleep(delay)
        else:
            raise RuntimeError(f"Failed to open device {self.device_id} after {attempts} attempts")

        if not self.is_file:
            self._configure_camera()
            if cfg.warmup_s > 0:
                time.sleep(cfg.warmup_s)

        self._read_failures = 0

    def _configure_camera(self) -> None:
        cfg = self._opencv_config
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, cfg.buffer_size)
        if cfg.resolution:
            w, h = cfg.resolution
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        if cfg.fps:
            self._cap.set(cv2.CAP_PROP_FPS, cfg.fps)

        logging.info(
            f"Camera settings: {self._cap.get(cv2.CAP_PROP_FRAME_WIDTH):.0f}x"
            f"{self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT):.0f} @ {self._cap.get(cv2.CAP_PROP_FPS):.1f} fps"
        )

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._cap is None or self._exhausted:
            return None

        ok, frame = self._cap.read()
        if not ok or frame is None:
            self._on_read_failure()
            return None

        self._read_failures = 0
        self._frame_index += 1
        return FrameData.from_numpy(
            self._apply_transforms(frame),
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def _on_read_failure(self) -> None:
        if self.is_file:
            logging.info(f"End of video file: {self.device_id}")
            self._exhausted = True
            return

        self._read_failures += 1
        if self._read_failures >= self._opencv_config.max_read_failures:
            logging.error(f"Camera {self.device_id} stopped delivering frames ({self._read_failures} failed reads)")
            self._exhausted = True
            return

        logging.warning(f"Failed to read frame ({self._read_failures}), reconnecting to {self.device_id}")
        failures = self._read_failures
        try:
            self._connect()
        except RuntimeError as e:
            logging.error(f"Reconnect failed: {e}")
            self._exhausted = True
            return
        self._read_failures = failures

    def _apply_transforms(self, frame: np.ndarray) -> np.ndarray:
        for transform in self._transforms:
            frame = transform(frame)
        return frame

    def _release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def close(self) -> None:
        self._release()
        self._is_open = False
        logging.info(f"OpenCVSource closed: source_id={self.source_id}")
