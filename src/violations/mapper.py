"""
Violation mapper: Detection -> Violation.

Adds identity, capture time and location, and fills in a plate identifier via
a pluggable PlateReader so a real OCR stage can replace the random one.
"""

from __future__ import annotations

import itertools
import random
import string
import threading
from typing import Dict, Optional, Protocol

from models.detection import Detection
from models.violation import Violation, ViolationType

# Model class name -> violation type.
CLASS_TO_VIOLATION: Dict[str, ViolationType] = {
    "no_helmet": ViolationType.HELMETLESS,
    "red_light_crossing": ViolationType.RED_LIGHT,
    "triple_riding": ViolationType.TRIPLE_RIDING,
    "overspeeding": ViolationType.OVERSPEEDING,
}

# Unmapped classes land here unless strict_unmapped is set.
DEFAULT_UNMAPPED_TYPE = ViolationType.OVERSPEEDING

# Process-wide violation id sequence, shared by every mapper.
_violation_ids = itertools.count(1)
_violation_id_lock = threading.Lock()


def next_violation_id() -> int:
    with _violation_id_lock:
        return next(_violation_ids)


class PlateReader(Protocol):
    def read_plate(self, detection: Detection, source_id: str) -> str:
        ...


class RandomPlateReader:
    """Placeholder plate reader: `ABC-1234` style identifiers from a seedable RNG."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()
        self._lock = threading.Lock()

    def read_plate(self, detection: Detection, source_id: str) -> str:
        with self._lock:
            letters = "".join(self._rng.choice(string.ascii_uppercase) for _ in range(3))
            digits = self._rng.randint(1000, 9999)
        return f"{letters}-{digits}"


def violation_type_for(class_name: str, strict_unmapped: bool = False) -> ViolationType:
    """Look up the violation type for a model class name."""
    mapped = CLASS_TO_VIOLATION.get(class_name)
    if mapped is not None:
        return mapped
    return ViolationType.UNKNOWN if strict_unmapped else DEFAULT_UNMAPPED_TYPE


class ViolationMapper:
    def __init__(
        self,
        plate_reader: Optional[PlateReader] = None,
        strict_unmapped: bool = False,
    ):
        self.plate_reader = plate_reader or RandomPlateReader()
        self.strict_unmapped = strict_unmapped

    def map(self, detection: Detection, source_id: str, now: float) -> Violation:
        plate = detection.plate or self.plate_reader.read_plate(detection, source_id)
        return Violation(
            id=next_violation_id(),
            type=violation_type_for(detection.class_name, self.strict_unmapped),
            plate=plate,
            location=source_id,
            timestamp=now,
            confidence=detection.confidence,
        )
