"""
CSV recording of per-frame ball centers.

One file per recording session, named ``<prefix>_<YYYYmmdd_HHMMSS>.csv``.
The header is written once when the session starts; every processed frame
then appends one row:

    Frame,Blue Ball,Red Ball,Orange Ball
    0,(32, 24),None,None
    1,None,None,None

Point cells contain a comma and are written unquoted, so rows must be split
with split_row() rather than a plain CSV reader.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, TextIO, Tuple

from errors import RecordingError
from models.config import DEFAULT_TRACKED_LABELS
from models.detection import Point

NONE_TOKEN = "None"
FRAME_COLUMN = "Frame"


class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"


def format_point(point: Optional[Point]) -> str:
    if point is None:
        return NONE_TOKEN
    x, y = point.as_int_tuple()
    return f"({x}, {y})"


def format_row(frame_index: int, centers: Mapping[str, Point], labels: Sequence[str]) -> str:
    """Format one data row (without the trailing newline)."""
    cells = [str(frame_index)] + [format_point(centers.get(label)) for label in labels]
    return ",".join(cells)


def split_row(line: str) -> List[str]:
    """Split a row on commas that are not inside parentheses."""
    fields: List[str] = []
    depth = 0
    current: List[str] = []
    for ch in line.rstrip("\r\n"):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)
        if ch == "," and depth == 0:
            fields.append("".join(current))
            current = []
            continue
        current.append(ch)
    fields.append("".join(current))
    return fields


def parse_point(cell: str) -> Optional[Tuple[int, int]]:
    cell = cell.strip()
    if cell == NONE_TOKEN:
        return None
    if not (cell.startswith("(") and cell.endswith(")")):
        raise ValueError(f"Malformed point cell: {cell!r}")
    x, y = cell[1:-1].split(",")
    return (int(x), int(y))


def read_rows(path: os.PathLike) -> Tuple[List[str], List[List[str]]]:
    """Read a session file back as (header, rows)."""
    with open(path, "r", encoding="utf-8") as f:
        lines = [line for line in f.read().splitlines() if line]
    if not lines:
        return [], []
    return lines[0].split(","), [split_row(line) for line in lines[1:]]


class CsvLogger:
    """
    Recording session writing one CSV row per processed frame.

    Idle until start(); start() opens a new file and resets the frame
    counter to 0, stop() closes it. Not thread-safe: the pipeline engine
    serializes calls.
    """

    def __init__(
        self,
        output_dir: str = "output",
        tracked_labels: Optional[Sequence[str]] = None,
        prefix: str = "webcam_output",
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.output_dir = Path(output_dir)
        self.tracked_labels: List[str] = list(tracked_labels or DEFAULT_TRACKED_LABELS)
        self.prefix = prefix
        self._clock = clock
        self._fh: Optional[TextIO] = None
        self._path: Optional[Path] = None
        self._frame_index = 0
        self._started_at: Optional[datetime] = None

    @property
    def header(self) -> List[str]:
        return [FRAME_COLUMN] + self.tracked_labels

    @property
    def state(self) -> SessionState:
        return SessionState.RECORDING if self._fh is not None else SessionState.IDLE

    @property
    def is_recording(self) -> bool:
        return self._fh is not None

    @property
    def path(self) -> Optional[Path]:
        """File of the current session (or the last one, once stopped)."""
        return self._path

    @property
    def frame_index(self) -> Optional[int]:
        """Index the next row will carry; None while idle."""
        return self._frame_index if self.is_recording else None

    @property
    def started_at(self) -> Optional[datetime]:
        return self._started_at if self.is_recording else None

    def _next_path(self) -> Path:
        stamp = self._clock().strftime("%Y%m%d_%H%M%S")
        path = self.output_dir / f"{self.prefix}_{stamp}.csv"
        suffix = 1
        while path.exists():
            path = self.output_dir / f"{self.prefix}_{stamp}_{suffix}.csv"
            suffix += 1
        return path

    def start(self) -> Path:
        """Open a new session file and write the header."""
        if self.is_recording:
            self.stop()

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path = self._next_path()
            fh = open(path, "x", encoding="utf-8", newline="")
        except OSError as e:
            raise RecordingError(f"Cannot create CSV file in {self.output_dir}: {e}") from e

        try:
            fh.write(",".join(self.header) + "\n")
            fh.flush()
        except OSError as e:
            fh.close()
            raise RecordingError(f"Cannot write CSV header to {path}: {e}") from e

        self._fh = fh
        self._path = path
        self._frame_index = 0
        self._started_at = self._clock()
        logging.info(f"CSV recording started: {path}")
        return path

    def write_row(self, centers: Mapping[str, Point]) -> str:
        """Append one row for the current frame and advance the frame counter."""
        if self._fh is None:
            raise RecordingError("Recording session is not active")

        line = format_row(self._frame_index, centers, self.tracked_labels)
        try:
            self._fh.write(line + "\n")
            self._fh.flush()
        except OSError as e:
            path = self._path
            self._close_handle()
            raise RecordingError(f"Failed to write CSV row to {path}: {e}") from e

        self._frame_index += 1
        return line

    def stop(self) -> Optional[Path]:
        """Flush and close the session file; returns its path, or None if idle."""
        if self._fh is None:
            return None

        rows = self._frame_index
        self._close_handle()
        logging.info(f"CSV recording stopped: {self._path} ({rows} rows)")
        return self._path

    def _close_handle(self) -> None:
        fh, self._fh = self._fh, None
        self._started_at = None
        if fh is None:
            return
        try:
            fh.close()
        except OSError as e:
            logging.warning(f"Error closing CSV file {self._path}: {e}")

    def summary(self) -> Dict[str, object]:
        return {
            "state": self.state.value,
            "path": str(self._path) if self._path else None,
            "frame_index": self.frame_index,
            "started_at": self.started_at.isoformat() if self.started_at else None,
        }
