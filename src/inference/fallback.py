"""
Fallback generator used while the model is unavailable.

Produces detections with the same shape as real ones (known class, 80-100%
confidence, fixed box) at a low randomized rate, so consumers only learn about
degraded mode through the backend readiness flag.
"""

from __future__ import annotations

import random
import threading
from typing import List, Optional, Sequence, Tuple

from models.detection import DEFAULT_CLASS_NAMES, BoundingBox, Detection

DEFAULT_FALLBACK_BBOX: Tuple[float, float, float, float] = (100.0, 100.0, 200.0, 150.0)


class FallbackGenerator:
    def __init__(
        self,
        class_names: Sequence[str] = DEFAULT_CLASS_NAMES,
        rate: float = 0.3,
        rng: Optional[random.Random] = None,
        bbox: Tuple[float, float, float, float] = DEFAULT_FALLBACK_BBOX,
        min_confidence: int = 80,
        max_confidence: int = 100,
    ):
        if not 0.0 <= rate <= 1.0:
            raise ValueError("rate must be between 0 and 1")
        self.class_names = tuple(class_names)
        self.rate = rate
        self.bbox = BoundingBox.from_tuple(bbox)
        self.min_confidence = min_confidence
        self.max_confidence = max_confidence
        self._rng = rng or random.Random()
        # random.Random is shared across camera threads; keep draws paired
        self._lock = threading.Lock()

    def generate(self, source_id: str) -> List[Detection]:
        """Return zero or one synthetic detections for this cycle."""
        with self._lock:
            if self._rng.random() >= self.rate:
                return []
            class_id = self._rng.randrange(len(self.class_names))
            confidence = self._rng.randint(self.min_confidence, self.max_confidence)

        return [
            Detection(
                class_name=self.class_names[class_id],
                confidence=confidence,
                bbox=self.bbox,
                class_id=class_id,
            )
        ]
