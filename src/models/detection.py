"""
Detection models for decoded model output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

# Class names emitted by the violation model, in output-column order.
DEFAULT_CLASS_NAMES: Tuple[str, ...] = (
    "no_helmet",
    "red_light_crossing",
    "triple_riding",
    "overspeeding",
)


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in model-input coordinates, (x, y, width, height) form.

    Attributes:
        x: Box x coordinate as emitted by the model.
        y: Box y coordinate as emitted by the model.
        w: Box width.
        h: Box height.
    """
    x: float
    y: float
    w: float
    h: float

    @property
    def area(self) -> float:
        return self.w * self.h

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, w, h) tuple."""
        return (self.x, self.y, self.w, self.h)

    @classmethod
    def from_tuple(cls, t: Tuple[float, float, float, float]) -> "BoundingBox":
        """Create from (x, y, w, h) tuple."""
        return cls(x=float(t[0]), y=float(t[1]), w=float(t[2]), h=float(t[3]))


@dataclass(frozen=True)
class Detection:
    """
    A single decoded detection.

    Attributes:
        class_name: One of the known model class names.
        confidence: Integer percent (0-100).
        bbox: Bounding box in model-input space.
        class_id: Index of the class in the model output.
        plate: Plate identifier if an upstream stage recognised one.
    """
    class_name: str
    confidence: int
    bbox: BoundingBox
    class_id: Optional[int] = None
    plate: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "class": self.class_name,
            "confidence": self.confidence,
            "bbox": list(self.bbox.as_tuple()),
            "class_id": self.class_id,
            "plate": self.plate,
        }
