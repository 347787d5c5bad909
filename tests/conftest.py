"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from datetime import datetime

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


class FixedClock:
    """Clock returning a fixed datetime, so session file names are predictable."""

    def __init__(self, now=datetime(2024, 11, 4, 12, 30, 0)):
        self.now = now

    def __call__(self):
        return self.now


class BrokenHandle:
    """File handle whose writes fail, for I/O failure paths."""

    closed = False

    def write(self, data):
        raise OSError("No space left on device")

    def flush(self):
        pass

    def close(self):
        self.closed = True


@pytest.fixture
def fixed_clock():
    return FixedClock()


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  backend: "opencv"
  device_id: 0
  resolution: [640, 480]
  fps: 30

detection:
  model: "models/best.pt"
  conf_threshold: 0.25

filter:
  max_box_width: 90
  max_box_height: 90

recording:
  output_dir: "output"
  tracked_labels: ["Blue Ball", "Red Ball", "Orange Ball"]

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "backend": "opencv",
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
        },
        "detection": {
            "model": "models/best.pt",
            "conf_threshold": 0.25,
            "iou_threshold": 0.45,
        },
        "filter": {
            "max_box_width": 90,
            "max_box_height": 90,
        },
        "recording": {
            "output_dir": "output",
            "filename_prefix": "webcam_output",
            "tracked_labels": ["Blue Ball", "Red Ball", "Orange Ball"],
        },
        "web": {
            "enabled": True,
            "port": 5000,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
