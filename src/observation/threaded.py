"""
Background capture thread feeding a bounded frame queue.

The wrapped source is read on its own thread so camera timing is decoupled
from inference. The queue holds at most ``max_queued`` frames; when the
consumer is still busy the oldest queued frame is dropped, so the consumer
always gets the freshest frame and never sees a frame twice.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from queue import Empty, Full, Queue
from typing import Optional

from models.frame import FrameData
from .base import ObservationConfig, ObservationSource


@dataclass
class ThreadedSourceConfig(ObservationConfig):
    """
    Attributes:
        max_queued: Frames buffered between capture and processing.
        read_timeout_s: How long read() waits for a frame.
        max_consecutive_misses: Empty reads from the wrapped source before giving up.
        miss_delay_s: Pause after an empty read.
    """
    max_queued: int = 1
    read_timeout_s: float = 1.0
    max_consecutive_misses: int = 10
    miss_delay_s: float = 0.05


class ThreadedSource(ObservationSource):
    """Runs another ObservationSource on a capture thread."""

    def __init__(self, inner: ObservationSource, config: Optional[ThreadedSourceConfig] = None):
        config = config or ThreadedSourceConfig(source_id=inner.source_id)
        super().__init__(config)
        self._inner = inner
        self._threaded_config = config
        self._queue: Queue = Queue(maxsize=max(1, config.max_queued))
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._producer_done = threading.Event()
        self._dropped_frames = 0

    @property
    def inner(self) -> ObservationSource:
        return self._inner

    @property
    def dropped_frames(self) -> int:
        """Frames discarded because the consumer had not taken the previous one."""
        return self._dropped_frames

    @property
    def exhausted(self) -> bool:
        return self._producer_done.is_set() and self._queue.empty()

    def open(self) -> None:
        """Open the wrapped source (raising on failure) and start the capture thread."""
        if self._is_open:
            return

        self._inner.open()
        self._stop_event.clear()
        self._producer_done.clear()
        self._dropped_frames = 0
        self._frame_index = 0
        self._is_open = True

        self._thread = threading.Thread(
            target=self._capture_loop,
            name=f"capture-{self.source_id}",
            daemon=True,
        )
        self._thread.start()

    def _capture_loop(self) -> None:
        cfg = self._threaded_config
        misses = 0
        try:
            while not self._stop_event.is_set():
                frame_data = self._inner.read()
                if frame_data is None:
                    if self._inner.exhausted:
                        break
                    misses += 1
                    if misses >= cfg.max_consecutive_misses:
                        logging.error(
                            f"Capture stopped after {misses} consecutive empty reads "
                            f"from {self._inner.source_id}"
                        )
                        break
                    time.sleep(cfg.miss_delay_s)
                    continue

                misses = 0
                self._offer(frame_data)
        except Exception as e:
            logging.error(f"Capture thread error: {e}")
        finally:
            self._producer_done.set()

    def _offer(self, frame_data: FrameData) -> None:
        while True:
            try:
                self._queue.put_nowait(frame_data)
                return
            except Full:
                try:
                    self._queue.get_nowait()
                    self._dropped_frames += 1
                except Empty:
                    pass

    def read(self, timeout: Optional[float] = None) -> Optional[FrameData]:
        """Block until the next frame arrives, or return None on timeout/end of stream."""
        if not self._is_open:
            return None

        timeout = self._threaded_config.read_timeout_s if timeout is None else timeout
        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            try:
                frame_data = self._queue.get(timeout=min(remaining, 0.1))
            except Empty:
                if self._producer_done.is_set() and self._queue.empty():
                    return None
                continue
            self._frame_index += 1
            return frame_data

    def close(self) -> None:
        """Stop the capture thread and close the wrapped source."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
        self._inner.close()
        self._is_open = False
        if self._dropped_frames:
            logging.info(f"ThreadedSource closed: dropped_frames={self._dropped_frames}")
