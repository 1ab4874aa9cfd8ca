"""
One processing cycle for one camera.

    Idle -> Preprocessing -> Inferring -> Decoding -> Mapping -> Inserted -> Idle
    Idle -> Fallback -> Mapping -> Inserted -> Idle

A malformed frame ends the cycle before any state change past Idle and
nothing is inserted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from inference.errors import PreconditionError
from models.detection import Detection
from models.frame import Frame
from models.violation import Violation
from runtime.context import RuntimeContext
from pipeline.stages.detect import CycleState, DetectStage
from pipeline.stages.record import RecordStage


@dataclass
class CycleResult:
    """Outcome of a single camera cycle."""
    source_id: str
    detections: List[Detection] = field(default_factory=list)
    violations: List[Violation] = field(default_factory=list)
    used_fallback: bool = False
    skipped: bool = False
    error: Optional[str] = None
    states: List[CycleState] = field(default_factory=list)


class CameraPipeline:
    """
    Frame-to-violation pipeline for a single camera source.

    Example:
        pipeline = CameraPipeline("Camera 1", ctx)
        result = pipeline.process(source.capture())
    """

    def __init__(self, source_id: str, ctx: RuntimeContext):
        self.source_id = source_id
        self.ctx = ctx
        self.detect_stage = DetectStage(ctx.backend, ctx.preprocessor, ctx.decoder, ctx.fallback)
        self.record_stage = RecordStage(ctx.mapper, ctx.ledger)
        self._state = CycleState.IDLE

    @property
    def state(self) -> CycleState:
        return self._state

    def process(self, frame: Frame) -> CycleResult:
        """Run the frame through detection, mapping and insertion."""
        result = CycleResult(source_id=self.source_id)
        try:
            self._run(frame, result)
        except PreconditionError as e:
            logging.warning(f"Skipping cycle for {self.source_id}: {e}")
            result.skipped = True
            result.error = str(e)
        finally:
            self._state = CycleState.IDLE
        return result

    def _run(self, frame: Frame, result: CycleResult) -> None:
        def enter(state: CycleState) -> None:
            self._state = state
            result.states.append(state)

        detected = self.detect_stage.detect(frame, self.source_id, on_state=enter)
        result.detections = detected.detections
        result.used_fallback = detected.used_fallback
        result.error = detected.error

        enter(CycleState.MAPPING)
        timestamp = frame.timestamp if frame.timestamp else self.ctx.clock()
        result.violations = self.record_stage.map(detected.detections, self.source_id, timestamp)
        self.record_stage.insert(result.violations)
        enter(CycleState.INSERTED)
