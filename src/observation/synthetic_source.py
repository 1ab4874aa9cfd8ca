"""
Synthetic frame source.

Generates fixed-size RGBA frames (a shifting gradient plus noise) so the
pipeline can run without a camera.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np

from models.frame import Frame
from .base import FrameSource, SourceConfig


@dataclass
class SyntheticSourceConfig(SourceConfig):
    """
    Attributes:
        seed: Seed for the noise generator (None = nondeterministic).
        noise: Max per-pixel noise amplitude (0-255).
    """
    seed: Optional[int] = None
    noise: int = 16

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any]) -> "SyntheticSourceConfig":
        resolution = camera_cfg.get("resolution") or [1280, 720]
        return cls(
            source_id=str(camera_cfg.get("source_id", "camera")),
            resolution=(int(resolution[0]), int(resolution[1])),
            seed=camera_cfg.get("seed"),
            noise=int(camera_cfg.get("noise", 16)),
        )


class SyntheticSource(FrameSource):
    def __init__(self, config: SyntheticSourceConfig):
        super().__init__(config)
        self._synthetic_config = config
        self._rng = np.random.default_rng(config.seed)
        w, h = config.resolution
        if w <= 0 or h <= 0:
            raise ValueError(f"Resolution must be positive, got {w}x{h}")
        # Base gradient, rolled one step per frame
        xs = np.linspace(0, 255, w, dtype=np.float32)
        ys = np.linspace(0, 255, h, dtype=np.float32)
        self._base = np.empty((h, w, 4), dtype=np.uint8)
        self._base[..., 0] = xs[np.newaxis, :].astype(np.uint8)
        self._base[..., 1] = ys[:, np.newaxis].astype(np.uint8)
        self._base[..., 2] = 128
        self._base[..., 3] = 255

    def open(self) -> None:
        self._is_open = True
        self._frame_index = 0
        logging.info(f"SyntheticSource opened: source_id={self.source_id}, resolution={self.resolution}")

    def capture(self) -> Optional[Frame]:
        if not self._is_open:
            return None

        self._frame_index += 1
        pixels = np.roll(self._base, self._frame_index, axis=1)
        noise_amp = self._synthetic_config.noise
        if noise_amp > 0:
            noise = self._rng.integers(0, noise_amp, size=pixels.shape[:2] + (3,), dtype=np.uint8)
            rgb = pixels[..., :3].astype(np.int16) + noise
            pixels = pixels.copy()
            pixels[..., :3] = np.clip(rgb, 0, 255).astype(np.uint8)

        return Frame.from_rgba(
            pixels,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source_id=self.source_id,
        )

    def close(self) -> None:
        self._is_open = False
