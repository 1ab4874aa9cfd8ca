"""
Tensor preprocessing: RGBA frame -> planar float32 model input.

The model expects a [1, 3, S, S] tensor with values in [0, 1]. Frames of any
size are letterboxed (uniform scale, centred padding) so the aspect ratio is
never distorted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

from models.frame import Frame
from .errors import PreconditionError

DEFAULT_INPUT_SIZE = 640
# YOLO letterbox grey
DEFAULT_PAD_VALUE = 114


@dataclass(frozen=True)
class LetterboxInfo:
    """
    Geometry of a letterbox resize.

    Attributes:
        scale: Uniform scale applied to the source frame.
        pad_x: Left padding in model-input pixels.
        pad_y: Top padding in model-input pixels.
        size: Model input size S.
    """
    scale: float
    pad_x: int
    pad_y: int
    size: int

    def to_source(self, bbox: Tuple[float, float, float, float]) -> Tuple[float, float, float, float]:
        """Map an (x, y, w, h) box from model-input space back to the source frame."""
        x, y, w, h = bbox
        return (
            (x - self.pad_x) / self.scale,
            (y - self.pad_y) / self.scale,
            w / self.scale,
            h / self.scale,
        )


def validate_frame(frame: Frame) -> None:
    """Raise PreconditionError unless the frame is a non-empty (H, W, 4) uint8 buffer."""
    if frame.width <= 0 or frame.height <= 0:
        raise PreconditionError(
            f"Frame dimensions must be positive, got {frame.width}x{frame.height}"
        )
    pixels = frame.pixels
    if pixels is None or pixels.ndim != 3 or pixels.shape != (frame.height, frame.width, 4):
        shape = None if pixels is None else pixels.shape
        raise PreconditionError(
            f"Frame buffer shape {shape} does not match ({frame.height}, {frame.width}, 4)"
        )
    if pixels.dtype != np.uint8:
        raise PreconditionError(f"Frame buffer must be uint8, got {pixels.dtype}")


class Preprocessor:
    """Letterbox + normalise frames into model-ready tensors."""

    def __init__(self, input_size: int = DEFAULT_INPUT_SIZE, pad_value: int = DEFAULT_PAD_VALUE):
        if input_size <= 0:
            raise ValueError("input_size must be positive")
        self.input_size = input_size
        self.pad_value = pad_value

    @property
    def tensor_shape(self) -> Tuple[int, int, int, int]:
        return (1, 3, self.input_size, self.input_size)

    def letterbox(self, frame: Frame) -> Tuple[np.ndarray, LetterboxInfo]:
        """
        Resize the frame into an S x S RGB canvas without distortion.

        Returns:
            (canvas, info) where canvas is uint8 (S, S, 3).
        """
        validate_frame(frame)
        size = self.input_size
        scale = min(size / frame.width, size / frame.height)
        new_w = min(size, max(1, int(round(frame.width * scale))))
        new_h = min(size, max(1, int(round(frame.height * scale))))

        rgb = cv2.cvtColor(np.ascontiguousarray(frame.pixels), cv2.COLOR_RGBA2RGB)
        if (new_w, new_h) != (frame.width, frame.height):
            rgb = cv2.resize(rgb, (new_w, new_h), interpolation=cv2.INTER_LINEAR)

        canvas = np.full((size, size, 3), self.pad_value, dtype=np.uint8)
        pad_x = (size - new_w) // 2
        pad_y = (size - new_h) // 2
        canvas[pad_y:pad_y + new_h, pad_x:pad_x + new_w] = rgb
        return canvas, LetterboxInfo(scale=scale, pad_x=pad_x, pad_y=pad_y, size=size)

    def preprocess(self, frame: Frame) -> np.ndarray:
        """Convert a frame into a float32 [1, 3, S, S] planar tensor in [0, 1]."""
        canvas, _ = self.letterbox(frame)
        tensor = canvas.astype(np.float32) / 255.0
        # HWC -> CHW, then add batch axis
        return np.ascontiguousarray(tensor.transpose(2, 0, 1)[np.newaxis, ...])


def preprocess(frame: Frame, input_size: int = DEFAULT_INPUT_SIZE) -> np.ndarray:
    """Module-level convenience wrapper around Preprocessor.preprocess."""
    return Preprocessor(input_size=input_size).preprocess(frame)
