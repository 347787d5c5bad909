from __future__ import annotations

import time
from typing import Iterable, Optional

import cv2

from pipeline.overlay import render
from web.state import PresentationState, PresentationStore


class StreamService:
    @staticmethod
    def snapshot_jpeg(state: PresentationState) -> bytes:
        """Encode the rendered presentation state (overlays included) as JPEG."""
        ok, buf = cv2.imencode(".jpg", render(state))
        if not ok:
            raise RuntimeError("Failed to encode JPEG")
        return buf.tobytes()

    @staticmethod
    def mjpeg_stream(
        store: PresentationStore,
        fps: int = 10,
        max_frames: Optional[int] = None,
    ) -> Iterable[bytes]:
        """
        Yield MJPEG multipart chunks of the latest presentation state.

        Reads the shared store instead of the camera, so any number of
        clients can watch without touching the capture device.
        """
        fps = max(1, min(30, int(fps)))
        delay = 1.0 / fps
        sent = 0
        while max_frames is None or sent < max_frames:
            jpg = StreamService.snapshot_jpeg(store.latest())
            yield b"--frame\r\nContent-Type: image/jpeg\r\n\r\n" + jpg + b"\r\n"
            sent += 1
            time.sleep(delay)
