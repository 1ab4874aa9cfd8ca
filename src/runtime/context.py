from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from inference.backend import InferenceBackend, UnavailableBackend
from inference.decoder import DetectionDecoder
from inference.fallback import FallbackGenerator
from inference.onnx_backend import OnnxBackend, OnnxConfig
from inference.preprocess import Preprocessor
from models.config import Config
from violations.ledger import ViolationLedger
from violations.mapper import RandomPlateReader, ViolationMapper


@dataclass
class RuntimeContext:
    """Holds the shared pipeline collaborators; avoids global singletons."""

    config: dict
    backend: InferenceBackend
    preprocessor: Preprocessor
    decoder: DetectionDecoder
    fallback: FallbackGenerator
    mapper: ViolationMapper
    ledger: ViolationLedger
    clock: Callable[[], float] = time.time
    reload_interval_s: float = 30.0
    start_time: float = field(default_factory=time.time)

    @property
    def backend_ready(self) -> bool:
        return self.backend.is_ready

    def uptime_seconds(self) -> int:
        return int(time.time() - self.start_time)


def create_backend_from_config(model_cfg: Dict[str, Any]) -> InferenceBackend:
    """ONNX backend when a model path is configured, otherwise the unavailable stub."""
    path = (model_cfg or {}).get("path")
    if not path:
        return UnavailableBackend()
    cfg = Config.from_dict({"model": model_cfg}).model
    return OnnxBackend(
        OnnxConfig(model_path=cfg.path, input_size=cfg.input_size, providers=tuple(cfg.providers))
    )


def create_context_from_config(
    config: Dict[str, Any],
    backend: Optional[InferenceBackend] = None,
) -> RuntimeContext:
    """Wire up pipeline collaborators from the application config dict."""
    typed = Config.from_dict(config)
    fallback_rng = random.Random(typed.fallback.seed) if typed.fallback.seed is not None else None
    plate_rng = random.Random(typed.mapper.plate_seed) if typed.mapper.plate_seed is not None else None

    return RuntimeContext(
        config=config,
        backend=backend or create_backend_from_config(config.get("model", {})),
        preprocessor=Preprocessor(input_size=typed.model.input_size),
        decoder=DetectionDecoder(
            class_names=typed.model.class_names,
            objectness_threshold=typed.detection.objectness_threshold,
            min_confidence=typed.detection.min_confidence,
        ),
        fallback=FallbackGenerator(
            class_names=typed.model.class_names,
            rate=typed.fallback.rate,
            rng=fallback_rng,
        ),
        mapper=ViolationMapper(
            plate_reader=RandomPlateReader(plate_rng),
            strict_unmapped=typed.mapper.strict_unmapped,
        ),
        ledger=ViolationLedger(capacity=typed.ledger.capacity),
        reload_interval_s=typed.model.reload_interval_s,
    )
