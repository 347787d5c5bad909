"""
OpenCV window viewer.

Shows the live feed with detection overlays. Keys:
    r  start/stop recording
    q  quit
"""

from __future__ import annotations

import logging
import threading

import cv2

from pipeline.overlay import render
from web.state import PresentationState, PresentationStore

WINDOW_NAME = "Ball Tracker"


class WindowViewer:
    """Redraws the window whenever the pipeline publishes a new state."""

    def __init__(self, store: PresentationStore, controller, window_name: str = WINDOW_NAME):
        self.store = store
        self.controller = controller
        self.window_name = window_name
        self._dirty = threading.Event()

    def _on_state(self, state: PresentationState) -> None:
        self._dirty.set()

    def handle_key(self, key: int) -> bool:
        """Apply a key press; returns False when the viewer should close."""
        if key == ord("q"):
            return False
        if key == ord("r"):
            recording = self.controller.toggle_recording()
            logging.info(f"Recording {'started' if recording else 'stopped'} from viewer")
        return True

    def run(self) -> None:
        """Blocking UI loop; must run on the main thread."""
        unsubscribe = self.store.subscribe(self._on_state)
        cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)
        cv2.imshow(self.window_name, render(self.store.latest()))
        try:
            while True:
                if self._dirty.wait(timeout=0.03):
                    self._dirty.clear()
                    cv2.imshow(self.window_name, render(self.store.latest()))
                key = cv2.waitKey(1) & 0xFF
                if key != 0xFF and not self.handle_key(key):
                    break
                if cv2.getWindowProperty(self.window_name, cv2.WND_PROP_VISIBLE) < 1:
                    break
        finally:
            unsubscribe()
            cv2.destroyWindow(self.window_name)
