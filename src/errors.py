"""
Error types for the ball tracker.

Components degrade to an inert state instead of raising across their
boundaries; these exceptions are raised inside a component and handled by
the pipeline engine (or the HTTP layer) that owns it.
"""

from __future__ import annotations


class BallTrackerError(Exception):
    """Base class for application errors."""


class RecordingError(BallTrackerError):
    """The CSV recording session could not be started or written."""
