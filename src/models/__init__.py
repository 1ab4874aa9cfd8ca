"""
Typed models for the violation monitor.

These are the records passed between pipeline stages and handed to
presentation collaborators.
"""

from .frame import Frame
from .detection import Detection, BoundingBox, DEFAULT_CLASS_NAMES
from .violation import Violation, ViolationType, CSV_HEADER
from .status import BackendStatus, CameraStats, DetectionMode, Status, StatusLevel
from .config import (
    Config,
    CameraConfig,
    ModelConfig,
    DetectionConfig,
    FallbackConfig,
    MapperConfig,
    LedgerConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "Frame",
    # Detection
    "Detection",
    "BoundingBox",
    "DEFAULT_CLASS_NAMES",
    # Violation
    "Violation",
    "ViolationType",
    "CSV_HEADER",
    # Status
    "BackendStatus",
    "CameraStats",
    "DetectionMode",
    "Status",
    "StatusLevel",
    # Config
    "Config",
    "CameraConfig",
    "ModelConfig",
    "DetectionConfig",
    "FallbackConfig",
    "MapperConfig",
    "LedgerConfig",
    "WebConfig",
]
