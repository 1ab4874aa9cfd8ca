"""
Logging setup.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable

LOG_FORMAT = "%(asctime)s - %(threadName)s - %(levelname)s - %(message)s"

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("uvicorn.access", "onnxruntime")


def setup_logging(
    log_path: str,
    log_level: str,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    log_dir = os.path.dirname(log_path)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    logging.basicConfig(
        level=getattr(logging, log_level),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_path),
            logging.StreamHandler(),
        ],
    )
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
