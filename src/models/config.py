"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .detection import DEFAULT_CLASS_NAMES


@dataclass
class CameraConfig:
    """One camera source and its processing cadence."""
    source_id: str = "Camera 1"
    backend: str = "synthetic"
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [1280, 720])
    interval_s: float = 2.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            source_id=str(d.get("source_id", "Camera 1")),
            backend=d.get("backend", "synthetic"),
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [1280, 720]),
            interval_s=float(d.get("interval_s", 2.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_id": self.source_id,
            "backend": self.backend,
            "device_id": self.device_id,
            "resolution": self.resolution,
            "interval_s": self.interval_s,
        }


@dataclass
class ModelConfig:
    """Detection model artifact and runtime options."""
    path: str = "models/traffic_violation_model.onnx"
    input_size: int = 640
    providers: List[str] = field(default_factory=lambda: ["CPUExecutionProvider"])
    class_names: List[str] = field(default_factory=lambda: list(DEFAULT_CLASS_NAMES))
    reload_interval_s: float = 30.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelConfig":
        return cls(
            path=d.get("path", "models/traffic_violation_model.onnx"),
            input_size=int(d.get("input_size", 640)),
            providers=d.get("providers") or ["CPUExecutionProvider"],
            class_names=d.get("class_names") or list(DEFAULT_CLASS_NAMES),
            reload_interval_s=float(d.get("reload_interval_s", 30.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "input_size": self.input_size,
            "providers": self.providers,
            "class_names": self.class_names,
            "reload_interval_s": self.reload_interval_s,
        }


@dataclass
class DetectionConfig:
    """Decoder thresholds."""
    objectness_threshold: float = 0.5
    min_confidence: int = 50

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        return cls(
            objectness_threshold=float(d.get("objectness_threshold", 0.5)),
            min_confidence=int(d.get("min_confidence", 50)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "objectness_threshold": self.objectness_threshold,
            "min_confidence": self.min_confidence,
        }


@dataclass
class FallbackConfig:
    """Simulated detections used while the model is unavailable."""
    rate: float = 0.3
    seed: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FallbackConfig":
        return cls(
            rate=float(d.get("rate", 0.3)),
            seed=d.get("seed"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"rate": self.rate, "seed": self.seed}


@dataclass
class MapperConfig:
    """Violation mapping options."""
    strict_unmapped: bool = False
    plate_seed: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MapperConfig":
        return cls(
            strict_unmapped=bool(d.get("strict_unmapped", False)),
            plate_seed=d.get("plate_seed"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"strict_unmapped": self.strict_unmapped, "plate_seed": self.plate_seed}


@dataclass
class LedgerConfig:
    """In-memory violation window."""
    capacity: int = 10

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LedgerConfig":
        return cls(capacity=int(d.get("capacity", 10)))

    def to_dict(self) -> Dict[str, Any]:
        return {"capacity": self.capacity}


@dataclass
class WebConfig:
    """Presentation API server."""
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 5000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=bool(d.get("enabled", True)),
            host=d.get("host", "0.0.0.0"),
            port=int(d.get("port", 5000)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "host": self.host, "port": self.port}


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    cameras: List[CameraConfig] = field(default_factory=lambda: [CameraConfig()])
    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    fallback: FallbackConfig = field(default_factory=FallbackConfig)
    mapper: MapperConfig = field(default_factory=MapperConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/violation_monitor.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        cameras = [CameraConfig.from_dict(c) for c in (d.get("cameras") or [])]
        return cls(
            cameras=cameras,
            model=ModelConfig.from_dict(d.get("model", {}) or {}),
            detection=DetectionConfig.from_dict(d.get("detection", {}) or {}),
            fallback=FallbackConfig.from_dict(d.get("fallback", {}) or {}),
            mapper=MapperConfig.from_dict(d.get("mapper", {}) or {}),
            ledger=LedgerConfig.from_dict(d.get("ledger", {}) or {}),
            web=WebConfig.from_dict(d.get("web", {}) or {}),
            log_path=d.get("log_path", "logs/violation_monitor.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or passing to existing code)."""
        return {
            "cameras": [c.to_dict() for c in self.cameras],
            "model": self.model.to_dict(),
            "detection": self.detection.to_dict(),
            "fallback": self.fallback.to_dict(),
            "mapper": self.mapper.to_dict(),
            "ledger": self.ledger.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
