"""
Pipeline engine for the ball tracker.

Per frame, sequentially on one processing thread:
    frame source -> detector -> size filter -> CSV row (while recording)
    -> presentation state

Recording start/stop may be requested from any thread. The CSV write and
the presentation publish for a frame happen under the same session lock the
start/stop calls take, so stop_recording() returns only after an in-flight
row has been written and no row is ever written to a closed session.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from detection.adapter import DetectorAdapter
from detection.filter import DetectionFilter, FilterResult
from errors import RecordingError
from models.config import Config
from models.frame import FrameData
from observation import ObservationSource, create_source_from_config
from recording.csv_logger import CsvLogger
from web.state import PresentationState, PresentationStore


@dataclass
class PipelineConfig:
    """
    Configuration for the pipeline engine.

    Attributes:
        max_consecutive_failures: Empty reads in a row before the engine stops.
        failure_delay_s: Pause after an empty read.
        stats_log_interval: Seconds between status log messages.
        record_on_start: Start a recording session as soon as the camera is open.
    """
    max_consecutive_failures: int = 10
    failure_delay_s: float = 0.5
    stats_log_interval: float = 60.0
    record_on_start: bool = False


@dataclass
class PipelineStats:
    """Runtime statistics for the pipeline."""
    frame_count: int = 0
    rows_written: int = 0
    fps: float = 0.0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)
    last_frame_time: Optional[float] = None
    consecutive_failures: int = 0


@dataclass(frozen=True)
class FrameResult:
    """Outcome of processing one frame."""
    frame_data: FrameData
    filtered: FilterResult
    row: Optional[str] = None


class PipelineEngine:
    """
    Main processing engine.

    Example:
        engine = PipelineEngine(source, detector, DetectionFilter(), CsvLogger(), store)
        engine.start()
        engine.start_recording()
        ...
        engine.stop_recording()
        engine.stop()
    """

    def __init__(
        self,
        source: ObservationSource,
        detector: DetectorAdapter,
        detection_filter: DetectionFilter,
        csv_logger: CsvLogger,
        store: PresentationStore,
        config: Optional[PipelineConfig] = None,
    ):
        self.source = source
        self.detector = detector
        self.detection_filter = detection_filter
        self.csv_logger = csv_logger
        self.store = store
        self.config = config or PipelineConfig()
        self.stats = PipelineStats()
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._session_lock = threading.RLock()
        self._last_error: Optional[str] = None
        self._last_row_index: Optional[int] = None
        self._callbacks: List[Callable[[FrameResult], None]] = []

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_recording(self) -> bool:
        return self.csv_logger.is_recording

    @property
    def detector_enabled(self) -> bool:
        return self.detector.enabled

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def add_callback(self, callback: Callable[[FrameResult], None]) -> None:
        """Add a callback to be called after each frame is processed."""
        self._callbacks.append(callback)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> threading.Thread:
        """Run the processing loop on a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._running = True
        self._thread = threading.Thread(target=self._run, name="pipeline", daemon=True)
        self._thread.start()
        return self._thread

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def stop(self) -> None:
        """Signal the pipeline to stop after the current frame."""
        self._running = False

    def run(self) -> None:
        """
        Run the main processing loop on the calling thread until stopped or
        the source is exhausted.

        A camera that cannot be opened is reported in the presentation state
        and the loop returns without processing frames.
        """
        self._running = True
        self._run()

    def _run(self) -> None:
        # stop() may land between start() and this thread running
        if not self._running:
            logging.info("Pipeline stopped before it started")
            return

        self.stats = PipelineStats()
        self.detector.load()

        try:
            self.source.open()
        except RuntimeError as e:
            self._running = False
            self._last_error = f"Camera unavailable: {e}"
            logging.error(self._last_error)
            self.store.update(
                running=False,
                frame=None,
                detections=(),
                detector_enabled=self.detector.enabled,
                error=self._last_error,
            )
            return

        logging.info(f"Pipeline started: source={self.source.source_id}")
        self.store.update(running=True, detector_enabled=self.detector.enabled, error=self._last_error)

        if self.config.record_on_start:
            try:
                self.start_recording()
            except RecordingError as e:
                logging.warning(f"Continuing without recording: {e}")

        try:
            while self._running:
                frame_data = self.source.read()

                if frame_data is None:
                    if self.source.exhausted:
                        logging.info("Frame source exhausted")
                        break
                    self.stats.consecutive_failures += 1
                    if self.stats.consecutive_failures >= self.config.max_consecutive_failures:
                        logging.error(
                            f"Too many consecutive failures ({self.stats.consecutive_failures}), stopping"
                        )
                        break
                    logging.warning(
                        f"Frame read failed ({self.stats.consecutive_failures}/"
                        f"{self.config.max_consecutive_failures})"
                    )
                    time.sleep(self.config.failure_delay_s)
                    continue

                self.stats.consecutive_failures = 0
                result = self.process_frame(frame_data)

                for callback in self._callbacks:
                    try:
                        callback(result)
                    except Exception as e:
                        logging.warning(f"Callback error: {e}")

                self._handle_periodic_tasks()

        except Exception:
            logging.exception("Pipeline error")
        finally:
            self._cleanup()

    # ------------------------------------------------------------------
    # Per-frame processing
    # ------------------------------------------------------------------

    def process_frame(self, frame_data: FrameData) -> FrameResult:
        """Detect, filter, log and publish one frame."""
        self.stats.frame_count += 1
        self._update_fps()

        detections = self.detector.detect(frame_data.frame)
        filtered = self.detection_filter.filter(detections, frame_data.size)

        with self._session_lock:
            row = self._log_row(filtered)
            self.store.publish(self._build_state(frame_data, filtered))

        return FrameResult(frame_data=frame_data, filtered=filtered, row=row)

    def _log_row(self, filtered: FilterResult) -> Optional[str]:
        if not self.csv_logger.is_recording:
            return None
        index = self.csv_logger.frame_index
        try:
            row = self.csv_logger.write_row(filtered.centers)
        except RecordingError as e:
            self._last_error = str(e)
            self._last_row_index = None
            logging.error(f"Recording stopped: {e}")
            return None
        self._last_row_index = index
        self.stats.rows_written += 1
        return row

    def _build_state(self, frame_data: FrameData, filtered: FilterResult) -> PresentationState:
        path = self.csv_logger.path
        return PresentationState(
            frame=frame_data.frame,
            detections=tuple(filtered.detections),
            running=self._running,
            recording=self.csv_logger.is_recording,
            frame_index=self._last_row_index if self.csv_logger.is_recording else None,
            csv_path=str(path) if path else None,
            fps=self.stats.fps,
            detector_enabled=self.detector.enabled,
            error=self._last_error,
            timestamp=frame_data.timestamp,
        )

    def _update_fps(self) -> None:
        now = time.time()
        last = self.stats.last_frame_time
        self.stats.last_frame_time = now
        if last is None or now <= last:
            return
        instant = 1.0 / (now - last)
        self.stats.fps = instant if self.stats.fps == 0 else 0.9 * self.stats.fps + 0.1 * instant

    # ------------------------------------------------------------------
    # Recording session control
    # ------------------------------------------------------------------

    def start_recording(self) -> Path:
        """
        Start a new CSV session (Idle -> Recording).

        Raises:
            RecordingError: If the file cannot be created; the session stays idle.
        """
        with self._session_lock:
            try:
                path = self.csv_logger.start()
            except RecordingError as e:
                self._last_error = str(e)
                logging.error(f"Failed to start recording: {e}")
                self.store.update(recording=False, frame_index=None, error=self._last_error)
                raise
            self._last_error = None
            self._last_row_index = None
            self.store.update(recording=True, frame_index=None, csv_path=str(path), error=None)
            return path

    def stop_recording(self) -> Optional[Path]:
        """Close the current CSV session (Recording -> Idle)."""
        with self._session_lock:
            path = self.csv_logger.stop()
            self._last_row_index = None
            self.store.update(recording=False, frame_index=None)
            return path

    def toggle_recording(self) -> bool:
        """Flip the session state; returns True if now recording."""
        with self._session_lock:
            if self.csv_logger.is_recording:
                self.stop_recording()
                return False
            try:
                self.start_recording()
            except RecordingError:
                return False
            return True

    def status(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "detector_enabled": self.detector.enabled,
            "frames": self.stats.frame_count,
            "rows_written": self.stats.rows_written,
            "fps": round(self.stats.fps, 2),
            "dropped_frames": getattr(self.source, "dropped_frames", 0),
            "recording": self.csv_logger.summary(),
            "error": self._last_error,
        }

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def _handle_periodic_tasks(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logging.info(
                f"Pipeline stats: frames={self.stats.frame_count}, "
                f"rows={self.stats.rows_written}, fps={self.stats.fps:.1f}, "
                f"dropped={getattr(self.source, 'dropped_frames', 0)}"
            )
            self.stats.last_stats_log_time = now

    def _cleanup(self) -> None:
        self._running = False

        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")

        self.stop_recording()
        self.store.update(running=False)
        logging.info("Pipeline stopped")


def create_engine_from_config(
    config: Dict[str, Any],
    store: PresentationStore,
    record: bool = False,
) -> PipelineEngine:
    """
    Factory function to create a PipelineEngine from the config dict.

    The detector is built but not loaded; run() loads it.
    """
    cfg = Config.from_dict(config)
    source = create_source_from_config(cfg.camera.to_dict(), source_id="webcam")
    detector = DetectorAdapter.from_config(cfg.detection)
    detection_filter = DetectionFilter(
        max_width=cfg.filter.max_box_width,
        max_height=cfg.filter.max_box_height,
    )
    csv_logger = CsvLogger(
        output_dir=cfg.recording.output_dir,
        tracked_labels=cfg.recording.tracked_labels,
        prefix=cfg.recording.filename_prefix,
    )

    return PipelineEngine(
        source,
        detector,
        detection_filter,
        csv_logger,
        store,
        PipelineConfig(record_on_start=record),
    )
