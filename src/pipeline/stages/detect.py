"""
Detect stage: frame -> detections.

Routes each cycle either through the model (preprocess, infer, decode) or,
when the backend is Unready or the inference call fails, through the fallback
generator. Only frame precondition errors escape this stage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from inference.backend import InferenceBackend
from inference.decoder import DetectionDecoder
from inference.errors import BackendError, DecodeAnomaly
from inference.fallback import FallbackGenerator
from inference.preprocess import Preprocessor, validate_frame
from models.detection import Detection
from models.frame import Frame


class CycleState(str, Enum):
    """Per-camera processing states."""
    IDLE = "idle"
    PREPROCESSING = "preprocessing"
    INFERRING = "inferring"
    DECODING = "decoding"
    FALLBACK = "fallback"
    MAPPING = "mapping"
    INSERTED = "inserted"


StateListener = Callable[[CycleState], None]


@dataclass
class DetectResult:
    detections: List[Detection] = field(default_factory=list)
    used_fallback: bool = False
    error: Optional[str] = None


class DetectStage:
    """
    Pipeline stage that turns a frame into detections.

    Example:
        stage = DetectStage(backend, Preprocessor(640), DetectionDecoder(), FallbackGenerator())
        result = stage.detect(frame, source_id="Camera 1")
    """

    def __init__(
        self,
        backend: InferenceBackend,
        preprocessor: Preprocessor,
        decoder: DetectionDecoder,
        fallback: FallbackGenerator,
    ):
        self.backend = backend
        self.preprocessor = preprocessor
        self.decoder = decoder
        self.fallback = fallback

    def detect(
        self,
        frame: Frame,
        source_id: str,
        on_state: Optional[StateListener] = None,
    ) -> DetectResult:
        """
        Run one detection pass.

        Raises:
            PreconditionError: If the frame is malformed.
        """
        notify = on_state or (lambda _state: None)
        validate_frame(frame)

        if not self.backend.is_ready:
            notify(CycleState.FALLBACK)
            return DetectResult(detections=self.fallback.generate(source_id), used_fallback=True)

        notify(CycleState.PREPROCESSING)
        tensor = self.preprocessor.preprocess(frame)

        notify(CycleState.INFERRING)
        try:
            raw = self.backend.run(tensor)
        except BackendError as e:
            logging.warning(
                f"Inference failed for {source_id} (structural={e.structural}), using fallback: {e}"
            )
            notify(CycleState.FALLBACK)
            return DetectResult(
                detections=self.fallback.generate(source_id),
                used_fallback=True,
                error=str(e),
            )

        notify(CycleState.DECODING)
        try:
            detections = self.decoder.decode(raw)
        except DecodeAnomaly as e:
            logging.warning(f"Decode anomaly for {source_id}, treating as no detections: {e}")
            return DetectResult(detections=[], error=str(e))

        return DetectResult(detections=detections)
