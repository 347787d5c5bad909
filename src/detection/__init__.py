"""
Ball Tracker - Detection Module

Loads the object-detection model and filters its output per frame.
"""

from .adapter import DetectorAdapter
from .filter import DetectionFilter, FilterResult

__all__ = ['DetectorAdapter', 'DetectionFilter', 'FilterResult']
