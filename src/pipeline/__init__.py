"""
Pipeline module for the violation monitor.

The pipeline orchestrates the per-camera processing flow:
- Frame capture from frame sources
- Preprocessing, inference and decoding (or fallback)
- Violation mapping and ledger insertion
"""

from .cycle import CameraPipeline, CycleResult
from .worker import CameraWorker
from .engine import PipelineEngine, create_engine_from_config
from .stages import CycleState, DetectResult, DetectStage, RecordStage

__all__ = [
    "CameraPipeline",
    "CycleResult",
    "CameraWorker",
    "PipelineEngine",
    "create_engine_from_config",
    "CycleState",
    "DetectResult",
    "DetectStage",
    "RecordStage",
]
