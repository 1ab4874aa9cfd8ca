from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class ViolationOut(BaseModel):
    id: int
    type: str
    plate: str
    location: str
    timestamp: float
    confidence: int = Field(..., ge=0, le=100)


class ViolationListResponse(BaseModel):
    violations: List[ViolationOut]
    count: int
    capacity: int


class StatsResponse(BaseModel):
    """Per-type counts over the current ledger window."""
    helmetless: int
    overspeeding: int
    red_light: int
    triple_riding: int
    unknown: int
    total: int


class CameraStatsOut(BaseModel):
    source_id: str
    running: bool
    cycles: int
    skipped_ticks: int
    fallback_cycles: int
    failed_cycles: int
    violations: int
    last_cycle_ts: Optional[float] = None


class StatusResponse(BaseModel):
    status: str = Field(..., description="running|degraded|offline")
    active: bool = Field(False, description="System toggled on via /api/system/start")
    detection_mode: str = Field(..., description="model|fallback")
    model_ready: bool
    alerts: List[str]
    cameras: List[CameraStatsOut]
    uptime_seconds: Optional[int] = None
    last_violation_id: Optional[int] = None
    violations_seen: int = 0
    timestamp: float


class SystemControlResponse(BaseModel):
    active: bool
    cameras_running: int
