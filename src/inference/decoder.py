"""
Detection decoder: raw YOLO-style output -> typed detections.

The raw buffer is a flat sequence of predictions, each `5 + C` values wide:
x, y, w, h, objectness, then one score per known class.
"""

from __future__ import annotations

import logging
import math
from typing import List, Sequence

import numpy as np

from models.detection import DEFAULT_CLASS_NAMES, BoundingBox, Detection
from .errors import DecodeAnomaly

# Lowest thresholds the decoder accepts.
MIN_OBJECTNESS_THRESHOLD = 0.5
MIN_CONFIDENCE_FLOOR = 50


def percent_confidence(objectness: float, class_score: float) -> int:
    """
    Combine objectness and class score into an integer percent.

    Rounds half up. The product is first quantised to 1e-4 so float32 model
    output (0.9 * 0.95 -> 85.49999...) rounds the same as exact input.
    """
    value = round(objectness * class_score * 100.0, 4)
    return max(0, min(100, int(math.floor(value + 0.5))))


class DetectionDecoder:
    """Decode raw model output with an objectness gate and argmax class pick."""

    def __init__(
        self,
        class_names: Sequence[str] = DEFAULT_CLASS_NAMES,
        objectness_threshold: float = 0.5,
        min_confidence: int = 50,
    ):
        if not class_names:
            raise ValueError("class_names must not be empty")
        if objectness_threshold < MIN_OBJECTNESS_THRESHOLD:
            raise ValueError(f"objectness_threshold must be at least {MIN_OBJECTNESS_THRESHOLD}")
        if min_confidence < MIN_CONFIDENCE_FLOOR:
            raise ValueError(f"min_confidence must be at least {MIN_CONFIDENCE_FLOOR}")
        self.class_names = tuple(class_names)
        self.objectness_threshold = objectness_threshold
        self.min_confidence = min_confidence

    @property
    def stride(self) -> int:
        return 5 + len(self.class_names)

    def decode(self, raw) -> List[Detection]:
        """
        Convert raw output into detections.

        Raises:
            DecodeAnomaly: If the buffer length is not a multiple of the stride.
        """
        data = np.asarray(raw, dtype=np.float64).reshape(-1)
        stride = self.stride
        if data.size % stride != 0:
            raise DecodeAnomaly(
                f"Raw output length {data.size} is not a multiple of stride {stride}"
            )

        rows = data.reshape(-1, stride)
        detections: List[Detection] = []
        for row in rows:
            if not np.all(np.isfinite(row)):
                continue
            objectness = float(row[4])
            if objectness <= self.objectness_threshold:
                continue

            scores = row[5:]
            # argmax returns the first maximum, so ties go to the lowest index
            class_id = int(np.argmax(scores))
            confidence = percent_confidence(objectness, float(scores[class_id]))
            if confidence < self.min_confidence:
                continue

            detections.append(
                Detection(
                    class_name=self.class_names[class_id],
                    confidence=confidence,
                    bbox=BoundingBox.from_tuple(row[0:4]),
                    class_id=class_id,
                )
            )

        if detections:
            logging.debug(f"Decoded {len(detections)} detections from {len(rows)} candidates")
        return detections
