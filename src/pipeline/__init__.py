"""
Pipeline module for the ball tracker.

The pipeline orchestrates the full processing flow:
- Frame acquisition from observation sources
- Detection and size filtering
- CSV recording
- Presentation state updates for the viewers
"""

from .engine import (
    FrameResult,
    PipelineConfig,
    PipelineEngine,
    PipelineStats,
    create_engine_from_config,
)

__all__ = [
    "FrameResult",
    "PipelineConfig",
    "PipelineEngine",
    "PipelineStats",
    "create_engine_from_config",
]
