"""
Frame model for captured video frames.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class Frame:
    """
    A captured video frame as a dense RGBA pixel buffer.

    Attributes:
        pixels: uint8 array of shape (height, width, 4), row-major RGBA.
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Unix timestamp when the frame was captured.
        frame_index: Sequential frame number since the source was opened.
        source_id: Identifier for the camera/video source.
    """
    pixels: np.ndarray
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source_id: Optional[str] = None

    @classmethod
    def from_rgba(
        cls,
        pixels: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source_id: Optional[str] = None,
    ) -> "Frame":
        """Create a Frame from an (H, W, 4) RGBA array."""
        h, w = pixels.shape[:2]
        return cls(
            pixels=pixels,
            width=w,
            height=h,
            timestamp=timestamp,
            frame_index=frame_index,
            source_id=source_id,
        )

    @property
    def shape(self) -> Tuple[int, ...]:
        """Return (height, width, channels)."""
        return self.pixels.shape

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)
