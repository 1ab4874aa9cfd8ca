"""
Record stage: detections -> violations in the shared ledger.
"""

from __future__ import annotations

import logging
from typing import List

from models.detection import Detection
from models.violation import Violation
from violations.ledger import ViolationLedger
from violations.mapper import ViolationMapper


class RecordStage:
    """Map detections to violations and insert them, in detection order."""

    def __init__(self, mapper: ViolationMapper, ledger: ViolationLedger):
        self.mapper = mapper
        self.ledger = ledger

    def map(self, detections: List[Detection], source_id: str, timestamp: float) -> List[Violation]:
        return [self.mapper.map(d, source_id, timestamp) for d in detections]

    def insert(self, violations: List[Violation]) -> None:
        for violation in violations:
            self.ledger.insert(violation)
            logging.info(
                f"Violation recorded: id={violation.id} type={violation.type.value} "
                f"plate={violation.plate} location={violation.location} "
                f"confidence={violation.confidence}%"
            )
