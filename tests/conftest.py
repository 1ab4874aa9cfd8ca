"""
Pytest configuration and shared fixtures.
"""

import os
import random
import sys
import time
from typing import List, Optional

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from inference.backend import InferenceBackend  # noqa: E402
from inference.errors import BackendError, ModelLoadError  # noqa: E402
from models.frame import Frame  # noqa: E402
from observation.base import FrameSource, SourceConfig  # noqa: E402


def make_frame(width: int = 64, height: int = 48, fill: int = 200, source_id: str = "Camera 1") -> Frame:
    """Solid-colour RGBA frame."""
    pixels = np.full((max(height, 0), max(width, 0), 4), fill, dtype=np.uint8)
    return Frame(
        pixels=pixels,
        width=width,
        height=height,
        timestamp=1700000000.0,
        source_id=source_id,
    )


def raw_row(x=10.0, y=20.0, w=30.0, h=40.0, objectness=0.9, scores=(0.1, 0.95, 0.2, 0.05)) -> List[float]:
    """One raw prediction row: box, objectness, class scores."""
    return [x, y, w, h, objectness, *scores]


class StubBackend(InferenceBackend):
    """
    In-memory backend for tests.

    Returns `output` from every run; `fail_load`, `run_error` let tests drive
    the Unready and error paths.
    """

    name = "stub"

    def __init__(self, output=None, fail_load: bool = False, run_error: Optional[BackendError] = None):
        super().__init__()
        self.output = np.asarray(output if output is not None else [], dtype=np.float32)
        self.fail_load = fail_load
        self.run_error = run_error
        self.run_calls = 0
        self.released = 0

    def _load(self, path):
        if self.fail_load:
            raise ModelLoadError("stub model missing")

    def _run(self, tensor):
        self.run_calls += 1
        if self.run_error is not None:
            raise self.run_error
        return self.output

    def _release(self):
        self.released += 1


class ListSource(FrameSource):
    """Frame source that replays a fixed list of frames, then returns None."""

    def __init__(self, source_id: str = "Camera 1", frames: Optional[List[Frame]] = None):
        super().__init__(SourceConfig(source_id=source_id, resolution=(64, 48)))
        self._frames = list(frames) if frames is not None else None
        self.open_calls = 0
        self.close_calls = 0

    def open(self) -> None:
        self.open_calls += 1
        self._is_open = True

    def capture(self) -> Optional[Frame]:
        if not self._is_open:
            return None
        self._frame_index += 1
        if self._frames is None:
            return make_frame(source_id=self.source_id)
        if not self._frames:
            return None
        return self._frames.pop(0)

    def close(self) -> None:
        self.close_calls += 1
        self._is_open = False


@pytest.fixture
def frame():
    return make_frame()


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "cameras": [
            {"source_id": "Camera 1", "backend": "synthetic", "resolution": [320, 240], "interval_s": 2.0},
            {"source_id": "Camera 2", "backend": "synthetic", "resolution": [320, 240], "interval_s": 2.5},
        ],
        "model": {
            "path": None,
            "input_size": 640,
            "class_names": ["no_helmet", "red_light_crossing", "triple_riding", "overspeeding"],
        },
        "detection": {"objectness_threshold": 0.5, "min_confidence": 50},
        "fallback": {"rate": 0.3, "seed": 7},
        "mapper": {"strict_unmapped": False, "plate_seed": 11},
        "ledger": {"capacity": 10},
        "web": {"enabled": False},
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
cameras:
  - source_id: "Camera 1"
    backend: "synthetic"
    resolution: [640, 480]
    interval_s: 2.0

model:
  path: "models/test.onnx"
  input_size: 640

ledger:
  capacity: 10

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def seeded_rng():
    return random.Random(1234)


@pytest.fixture
def fixed_clock():
    return lambda: 1700000000.0


def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll until predicate() is truthy or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
