"""
Pipeline stages for the violation monitor.

Each stage handles a specific part of the processing cycle:
- detect: preprocessing, inference, decoding (or fallback)
- record: violation mapping and ledger insertion
"""

from .detect import CycleState, DetectResult, DetectStage
from .record import RecordStage

__all__ = ["CycleState", "DetectResult", "DetectStage", "RecordStage"]
