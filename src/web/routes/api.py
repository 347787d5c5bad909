from __future__ import annotations

import time
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response, StreamingResponse

from errors import RecordingError
from ..api_models import DetectionModel, PointModel, RecordingResponse, StatusResponse
from ..services.stream_service import StreamService
from ..state import PresentationState

router = APIRouter()


def _detections_payload(state: PresentationState) -> List[DetectionModel]:
    return [
        DetectionModel(
            label=d.label,
            confidence=d.confidence,
            center=PointModel(x=d.center.x, y=d.center.y),
            bbox=[d.bbox.x, d.bbox.y, d.bbox.width, d.bbox.height],
        )
        for d in state.detections
    ]


def _last_frame_age(state: PresentationState, now: float) -> Optional[float]:
    if not state.has_frame:
        return None
    return max(0.0, now - state.timestamp)


@router.get("/status", response_model=StatusResponse)
def status(request: Request):
    """
    Latest presentation state for the viewer page.

    - running / recording: pipeline and session state
    - frame_index: index of the last CSV row written this session
    - error: last camera, model or recording error (None when healthy)
    """
    now = time.time()
    store = request.app.state.store
    state = store.latest()
    return StatusResponse(
        running=state.running,
        recording=state.recording,
        frame_index=state.frame_index,
        csv_path=state.csv_path,
        fps=round(state.fps, 2),
        detector_enabled=state.detector_enabled,
        last_frame_age_s=_last_frame_age(state, now),
        uptime_seconds=int(now - store.start_time),
        error=state.error,
        detections=_detections_payload(state),
    )


@router.post("/recording/start", response_model=RecordingResponse)
def start_recording(request: Request):
    controller = request.app.state.controller
    try:
        path = controller.start_recording()
    except RecordingError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return RecordingResponse(recording=True, csv_path=str(path))


@router.post("/recording/stop", response_model=RecordingResponse)
def stop_recording(request: Request):
    controller = request.app.state.controller
    path = controller.stop_recording()
    return RecordingResponse(recording=False, csv_path=str(path) if path else None)


@router.get("/snapshot.jpg")
def snapshot(request: Request):
    state = request.app.state.store.latest()
    try:
        jpg = StreamService.snapshot_jpeg(state)
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return Response(content=jpg, media_type="image/jpeg")


@router.get("/stream")
def stream(request: Request):
    fps = getattr(request.app.state, "stream_fps", 10)
    return StreamingResponse(
        StreamService.mjpeg_stream(request.app.state.store, fps=fps),
        media_type="multipart/x-mixed-replace; boundary=frame",
    )
