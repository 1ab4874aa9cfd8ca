"""
Status models for backend readiness and pipeline monitoring.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class BackendStatus(str, Enum):
    """Inference backend readiness."""
    READY = "ready"
    UNREADY = "unready"


class StatusLevel(str, Enum):
    """System status levels."""
    RUNNING = "running"
    DEGRADED = "degraded"
    OFFLINE = "offline"


class DetectionMode(str, Enum):
    """Whether violations currently come from the real model or the fallback."""
    MODEL = "model"
    FALLBACK = "fallback"


@dataclass
class CameraStats:
    """
    Runtime statistics for one camera worker.

    Attributes:
        source_id: Camera identifier.
        running: Whether the worker is currently ticking.
        cycles: Completed processing cycles.
        skipped_ticks: Ticks dropped because a cycle was still in flight.
        fallback_cycles: Cycles served by the fallback generator.
        failed_cycles: Cycles aborted by a precondition or unexpected error.
        violations: Violations inserted into the ledger by this camera.
        last_cycle_ts: Unix timestamp of the last completed cycle.
    """
    source_id: str
    running: bool = False
    cycles: int = 0
    skipped_ticks: int = 0
    fallback_cycles: int = 0
    failed_cycles: int = 0
    violations: int = 0
    last_cycle_ts: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_id": self.source_id,
            "running": self.running,
            "cycles": self.cycles,
            "skipped_ticks": self.skipped_ticks,
            "fallback_cycles": self.fallback_cycles,
            "failed_cycles": self.failed_cycles,
            "violations": self.violations,
            "last_cycle_ts": self.last_cycle_ts,
        }


@dataclass
class Status:
    """
    Aggregate system status for monitoring/UI.

    Attributes:
        status: running when the real model is serving, degraded in fallback mode,
            offline when no camera is running.
        detection_mode: model or fallback.
        alerts: List of active alert codes.
        cameras: Per-camera worker statistics.
        uptime_seconds: Seconds since system started.
        timestamp: Unix timestamp of this status snapshot.
    """
    status: StatusLevel
    detection_mode: DetectionMode
    alerts: List[str] = field(default_factory=list)
    cameras: List[CameraStats] = field(default_factory=list)
    uptime_seconds: Optional[int] = None
    timestamp: float = 0.0

    @classmethod
    def derive(
        cls,
        backend_ready: bool,
        cameras: List[CameraStats],
        uptime_seconds: Optional[int] = None,
        timestamp: float = 0.0,
    ) -> "Status":
        """Classify readiness and camera state into a status level."""
        alerts: List[str] = []
        mode = DetectionMode.MODEL if backend_ready else DetectionMode.FALLBACK
        level = StatusLevel.RUNNING
        if not backend_ready:
            level = StatusLevel.DEGRADED
            alerts.append("model_unavailable")
        if not any(c.running for c in cameras):
            level = StatusLevel.OFFLINE
            alerts.append("no_active_cameras")
        return cls(
            status=level,
            detection_mode=mode,
            alerts=alerts,
            cameras=list(cameras),
            uptime_seconds=uptime_seconds,
            timestamp=timestamp,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status.value,
            "detection_mode": self.detection_mode.value,
            "alerts": self.alerts,
            "cameras": [c.to_dict() for c in self.cameras],
            "uptime_seconds": self.uptime_seconds,
            "timestamp": self.timestamp,
        }

    @property
    def is_healthy(self) -> bool:
        """True if status is running with no alerts."""
        return self.status == StatusLevel.RUNNING and len(self.alerts) == 0
