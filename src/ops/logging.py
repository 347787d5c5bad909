"""
Logging setup.

One root configuration shared by the pipeline thread, the capture thread
and the web server; library loggers that are chatty at INFO are raised to
WARNING unless DEBUG is requested.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable

NOISY_LOGGERS = ("ultralytics", "uvicorn.access", "multipart")


def setup_logging(log_path: str, log_level: str, quiet: Iterable[str] = NOISY_LOGGERS) -> None:
    log_dir = os.path.dirname(log_path)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    level = getattr(logging, log_level)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(message)s",
        handlers=[
            logging.FileHandler(log_path),
            logging.StreamHandler(),
        ],
        force=True,
    )

    if level > logging.DEBUG:
        for name in quiet:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))
