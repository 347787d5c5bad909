"""
Frame source contract.

The pipeline only talks to ObservationSource, so a webcam, a video file and
a test double are interchangeable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Settings shared by every source.

    Attributes:
        source_id: Name reported on each FrameData (e.g. "webcam").
        resolution: Requested (width, height); None keeps the device default.
        fps: Requested frame rate; None keeps the device default.
    """
    source_id: str = "default"
    resolution: Optional[Tuple[int, int]] = None
    fps: Optional[int] = None


class ObservationSource(ABC):
    """
    open() -> read()* -> close().

    read() returning None is either a transient miss or the end of the
    stream; ``exhausted`` tells the two apart. Sources are context managers
    and iterate until exhausted:

        with source:
            for frame_data in source:
                ...
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._exhausted = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def exhausted(self) -> bool:
        """True once the source will not produce another frame."""
        return self._exhausted

    @property
    def frame_index(self) -> int:
        """Frames read since open()."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Raises:
            RuntimeError: If the device or file cannot be opened.
        """

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """Next frame, or None if none is available."""

    @abstractmethod
    def close(self) -> None:
        """Release the device. Safe to call more than once."""

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")

        while self._is_open and not self.exhausted:
            frame_data = self.read()
            if frame_data is not None:
                yield frame_data
