"""
Violation model: the record shared with every presentation collaborator.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import List

CSV_HEADER: List[str] = [
    "Timestamp",
    "Violation Type",
    "License Plate",
    "Location",
    "Confidence",
]


class ViolationType(str, Enum):
    """Violation categories surfaced to the dashboard."""
    HELMETLESS = "helmetless"
    OVERSPEEDING = "overspeeding"
    RED_LIGHT = "red_light"
    TRIPLE_RIDING = "triple_riding"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Violation:
    """
    A mapped traffic violation.

    Attributes:
        id: Process-unique, strictly increasing identifier.
        type: Violation category.
        plate: Plate identifier (recognised or synthesized).
        location: Identifier of the camera source that saw it.
        timestamp: Unix timestamp of the capture instant.
        confidence: Integer percent (0-100).
    """
    id: int
    type: ViolationType
    plate: str
    location: str
    timestamp: float
    confidence: int

    @property
    def captured_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "type": self.type.value,
            "plate": self.plate,
            "location": self.location,
            "timestamp": self.timestamp,
            "confidence": self.confidence,
        }

    def to_csv_row(self) -> List[str]:
        """Row matching CSV_HEADER."""
        return [
            self.captured_at.isoformat(),
            self.type.value,
            self.plate,
            self.location,
            f"{self.confidence}%",
        ]
