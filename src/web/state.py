"""
Presentation state shared between the processing pipeline and the viewers.

The pipeline publishes a new PresentationState after every processed frame
(and on every recording start/stop); viewers either poll latest() or
subscribe to be notified, so render cadence is independent of pipeline
cadence.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Tuple

import numpy as np

from models.detection import FilteredDetection

Subscriber = Callable[["PresentationState"], None]


@dataclass(frozen=True)
class PresentationState:
    frame: Optional[np.ndarray] = None
    detections: Tuple[FilteredDetection, ...] = ()
    running: bool = False
    recording: bool = False
    frame_index: Optional[int] = None
    csv_path: Optional[str] = None
    fps: float = 0.0
    detector_enabled: bool = False
    error: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    @property
    def has_frame(self) -> bool:
        return self.frame is not None


class PresentationStore:
    """Thread-safe holder of the latest PresentationState."""

    def __init__(self, initial: Optional[PresentationState] = None):
        self._lock = threading.Lock()
        self._state = initial or PresentationState()
        self._subscribers: List[Subscriber] = []
        self.start_time = time.time()

    def latest(self) -> PresentationState:
        with self._lock:
            return self._state

    def publish(self, state: PresentationState) -> None:
        with self._lock:
            self._state = state
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(state)
            except Exception as e:
                logging.warning(f"Presentation subscriber error: {e}")

    def update(self, **changes) -> PresentationState:
        """Publish a copy of the latest state with some fields replaced."""
        with self._lock:
            state = replace(self._state, timestamp=time.time(), **changes)
        self.publish(state)
        return state

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe
