"""
Frame overlays for the viewers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional, Tuple

import cv2
import numpy as np

from models.detection import FilteredDetection

if TYPE_CHECKING:
    from web.state import PresentationState

# Colors (BGR)
COLOR_BOX = (0, 255, 0)
COLOR_TEXT = (0, 0, 0)
COLOR_REC = (0, 0, 255)
COLOR_ERROR = (0, 165, 255)


def draw_detections(frame: np.ndarray, detections: Iterable[FilteredDetection]) -> np.ndarray:
    """Return a copy of the frame with a box and "label: conf" caption per detection."""
    out = frame.copy()
    h, w = out.shape[:2]
    font = cv2.FONT_HERSHEY_SIMPLEX

    for det in detections:
        x1, y1, x2, y2 = det.bbox.to_pixels((w, h))
        cv2.rectangle(out, (x1, y1), (x2, y2), COLOR_BOX, 2)

        label = f"{det.label}: {det.confidence:.2f}"
        (tw, th), _ = cv2.getTextSize(label, font, 0.5, 1)
        top = max(y1 - th - 6, 0)
        cv2.rectangle(out, (x1, top), (x1 + tw + 4, top + th + 6), COLOR_BOX, -1)
        cv2.putText(out, label, (x1 + 2, top + th + 2), font, 0.5, COLOR_TEXT, 1)

        cx, cy = det.center.as_int_tuple()
        cv2.circle(out, (cx, cy), 3, COLOR_BOX, -1)

    return out


def draw_status(
    frame: np.ndarray,
    recording: bool,
    frame_index: Optional[int] = None,
    error: Optional[str] = None,
) -> np.ndarray:
    """Draw the REC indicator and the last error in place."""
    font = cv2.FONT_HERSHEY_SIMPLEX
    if recording:
        cv2.circle(frame, (20, 20), 8, COLOR_REC, -1)
        text = "REC" if frame_index is None else f"REC  frame {frame_index}"
        cv2.putText(frame, text, (36, 26), font, 0.6, COLOR_REC, 2)
    if error:
        cv2.putText(frame, error[:80], (10, frame.shape[0] - 12), font, 0.5, COLOR_ERROR, 1)
    return frame


def placeholder_frame(size: Tuple[int, int] = (640, 480), text: str = "No camera feed") -> np.ndarray:
    """Blank frame shown while no camera frames are available."""
    w, h = size
    frame = np.zeros((h, w, 3), dtype=np.uint8)
    font = cv2.FONT_HERSHEY_SIMPLEX
    (tw, th), _ = cv2.getTextSize(text, font, 0.8, 2)
    cv2.putText(frame, text, ((w - tw) // 2, (h + th) // 2), font, 0.8, (200, 200, 200), 2)
    return frame


def render(state: PresentationState) -> np.ndarray:
    """Render a PresentationState into a displayable BGR image."""
    if state.frame is None:
        frame = placeholder_frame()
    else:
        frame = draw_detections(state.frame, state.detections)
    return draw_status(frame, state.recording, state.frame_index, state.error)
