"""
FastAPI application factory for the ball tracker web viewer.

Routes:
- / -> viewer page (live feed + recording toggle)
- /api/* -> REST API (status, recording control, snapshot, MJPEG stream)
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from .routes import api, pages
from .state import PresentationStore


def create_app(store: PresentationStore, controller: Any, stream_fps: int = 10) -> FastAPI:
    """
    Create the FastAPI app.

    Args:
        store: Presentation state published by the pipeline.
        controller: Object with start_recording()/stop_recording() (the PipelineEngine).
        stream_fps: Frame rate of the MJPEG stream.
    """
    app = FastAPI(
        title="Ball Tracker",
        version="0.1.0",
        description="Webcam ball detection with CSV logging",
    )
    app.state.store = store
    app.state.controller = controller
    app.state.stream_fps = stream_fps

    app.include_router(api.router, prefix="/api")
    app.include_router(pages.router)

    return app
