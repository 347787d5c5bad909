from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class PointModel(BaseModel):
    x: float
    y: float


class DetectionModel(BaseModel):
    label: str
    confidence: float
    center: PointModel
    bbox: List[float] = Field(..., description="Normalized [x, y, width, height]")


class StatusResponse(BaseModel):
    """Status payload polled by the viewer page."""
    running: bool = Field(..., description="True while the pipeline is processing frames")
    recording: bool
    frame_index: Optional[int] = Field(None, description="Index of the last CSV row written")
    csv_path: Optional[str] = None
    fps: float = 0.0
    detector_enabled: bool = False
    last_frame_age_s: Optional[float] = Field(None, description="Seconds since last frame")
    uptime_seconds: int = 0
    error: Optional[str] = None
    detections: List[DetectionModel] = Field(default_factory=list)


class RecordingResponse(BaseModel):
    recording: bool
    csv_path: Optional[str] = None
