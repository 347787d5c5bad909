"""
Page routes for the ball tracker web viewer.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


@router.get("/", response_class=HTMLResponse)
def viewer(request: Request):
    """Live feed with detection overlays and the recording toggle."""
    state = request.app.state.store.latest()
    return templates.TemplateResponse(
        request,
        "index.html",
        {"title": request.app.title, "recording": state.recording},
    )
