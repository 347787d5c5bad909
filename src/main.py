"""
Ball Tracker: webcam ball detection with per-frame CSV logging.

Captures frames from the first available camera, runs the detection model on
each frame, overlays the detected balls and, while recording, appends the
center of each tracked ball to a CSV file.

Usage:
    python src/main.py --config config/config.yaml --display

Arguments:
    --config: Path to configuration file
    --display: Show the OpenCV viewer window (r = start/stop recording, q = quit)
    --record: Start recording as soon as the camera is open
    --no-web: Do not start the web viewer
"""

import argparse
import logging
import os
import sys
import threading
import time
from typing import Any, Dict, List, Optional, Tuple

import uvicorn
import yaml

from ops.logging import setup_logging
from pipeline.engine import create_engine_from_config
from viewer import WindowViewer
from web.app import create_app
from web.state import PresentationStore


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _config_layers(config_path: str) -> List[str]:
    """Existing config files in merge order, without duplicates."""
    config_dir = os.path.dirname(config_path)
    candidates = [
        os.path.join(config_dir, "default.yaml"),
        os.path.join(config_dir, "config.yaml"),
        config_path,
    ]
    layers: List[str] = []
    for path in candidates:
        if os.path.exists(path) and os.path.abspath(path) not in map(os.path.abspath, layers):
            layers.append(path)
    return layers


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)

    Exits the process if a file cannot be read or parsed.
    """
    merged: Dict[str, Any] = {}
    for path in _config_layers(config_path):
        try:
            with open(path, "r") as f:
                layer = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logging.error(f"Failed to load configuration from {path}: {e}")
            sys.exit(1)
        _deep_merge(merged, layer)
    return merged


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'detection', 'recording', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Camera
    camera = config.get('camera', {}) or {}
    if camera.get('backend', 'opencv') != 'opencv':
        return False, "camera.backend must be: opencv"
    device_id = camera.get('device_id', 0)
    if isinstance(device_id, bool) or not isinstance(device_id, (int, str)):
        return False, "camera.device_id must be an integer (index) or string (video file)"
    if isinstance(device_id, int) and device_id < 0:
        return False, "camera.device_id integer must be non-negative"
    if 'resolution' in camera:
        resolution = camera['resolution']
        if not isinstance(resolution, list) or len(resolution) != 2:
            return False, "camera.resolution must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in resolution):
            return False, "camera.resolution values must be positive integers"
    if 'fps' in camera and (not isinstance(camera['fps'], int) or camera['fps'] <= 0):
        return False, "camera.fps must be a positive integer"
    if camera.get('rotate', 0) not in (0, 90, 180, 270, None):
        return False, "camera.rotate must be one of: 0, 90, 180, 270"

    # Detection
    detection = config.get('detection', {}) or {}
    model = detection.get('model')
    if not isinstance(model, str) or not model:
        return False, "detection.model is required"
    for key in ('conf_threshold', 'iou_threshold'):
        if key in detection:
            value = detection[key]
            if not isinstance(value, (int, float)) or not (0 <= value <= 1):
                return False, f"detection.{key} must be between 0 and 1"

    # Size filter (optional)
    size_filter = config.get('filter', {}) or {}
    for key in ('max_box_width', 'max_box_height'):
        if key in size_filter:
            value = size_filter[key]
            if not isinstance(value, (int, float)) or value <= 0:
                return False, f"filter.{key} must be a positive number"

    # Recording
    recording = config.get('recording', {}) or {}
    if not isinstance(recording.get('output_dir', 'output'), str):
        return False, "recording.output_dir must be a string"
    labels = recording.get('tracked_labels')
    if labels is not None:
        if not isinstance(labels, list) or not labels or not all(isinstance(l, str) and l for l in labels):
            return False, "recording.tracked_labels must be a non-empty list of labels"
        if len(set(labels)) != len(labels):
            return False, "recording.tracked_labels must not contain duplicates"

    # Web (optional)
    web = config.get('web', {}) or {}
    if 'port' in web and (not isinstance(web['port'], int) or not (0 < web['port'] < 65536)):
        return False, "web.port must be a valid TCP port"

    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Ball Tracker - webcam ball detection')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--display', action='store_true',
                        help='Show the OpenCV viewer window')
    parser.add_argument('--record', action='store_true',
                        help='Start recording immediately')
    parser.add_argument('--no-web', action='store_true',
                        help='Disable the web viewer')
    args = parser.parse_args()

    config = load_config(args.config)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    logging.info("Starting Ball Tracker")

    store = PresentationStore()
    engine = create_engine_from_config(config, store, record=args.record)

    web_cfg = config.get('web', {}) or {}
    web_enabled = web_cfg.get('enabled', True) and not args.no_web
    if web_enabled:
        app = create_app(store, engine, stream_fps=web_cfg.get('stream_fps', 10))

        def run_web_app():
            uvicorn.run(
                app,
                host=web_cfg.get('host', '0.0.0.0'),
                port=web_cfg.get('port', 5000),
                log_level="warning",
            )

        web_thread = threading.Thread(target=run_web_app, name="web", daemon=True)
        web_thread.start()
        logging.info(f"Web viewer started on port {web_cfg.get('port', 5000)}")

    engine.start()

    try:
        if args.display:
            WindowViewer(store, engine).run()
        elif web_enabled:
            # Keep serving the viewer even if the camera or model is unavailable
            while True:
                time.sleep(1)
        else:
            while engine.is_running:
                engine.join(timeout=1)
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    finally:
        engine.stop()
        engine.join(timeout=5)
        if engine.is_recording:
            engine.stop_recording()
        logging.info("Ball Tracker stopped")


if __name__ == "__main__":
    main()
