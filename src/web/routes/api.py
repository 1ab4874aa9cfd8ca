from __future__ import annotations

import csv
import io

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from models.violation import CSV_HEADER
from ..api_models import (
    CameraStatsOut,
    StatsResponse,
    StatusResponse,
    SystemControlResponse,
    ViolationListResponse,
    ViolationOut,
)
from ..state import SharedState

router = APIRouter()

# Bound on how long /system/stop waits for in-flight cycles
STOP_TIMEOUT_S = 5.0


def _state(request: Request) -> SharedState:
    state = getattr(request.app.state, "web", None)
    if state is None or state.ctx is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialized")
    return state


def _engine(request: Request):
    engine = _state(request).engine
    if engine is None:
        raise HTTPException(status_code=503, detail="Pipeline engine not attached")
    return engine


@router.get("/violations", response_model=ViolationListResponse)
def list_violations(request: Request):
    """Current ledger window, newest first."""
    ledger = _state(request).ctx.ledger
    snapshot = ledger.snapshot()
    return ViolationListResponse(
        violations=[ViolationOut(**v.to_dict()) for v in snapshot],
        count=len(snapshot),
        capacity=ledger.capacity,
    )


@router.get("/stats", response_model=StatsResponse)
def stats(request: Request):
    return StatsResponse(**_state(request).ctx.ledger.aggregate())


@router.get("/status", response_model=StatusResponse)
def status(request: Request):
    """
    Readiness and per-camera status.

    detection_mode tells the dashboard whether violations come from the real
    model or from the fallback generator.
    """
    state = _state(request)
    st = state.get_status()
    last = state.get_last_violation()
    return StatusResponse(
        status=st.status.value,
        active=state.is_active,
        detection_mode=st.detection_mode.value,
        model_ready=state.ctx.backend_ready,
        alerts=st.alerts,
        cameras=[CameraStatsOut(**c.to_dict()) for c in st.cameras],
        uptime_seconds=st.uptime_seconds,
        last_violation_id=last.id if last else None,
        violations_seen=state.violations_seen,
        timestamp=st.timestamp,
    )


@router.get("/violations/export.csv")
def export_violations(request: Request):
    """CSV export of the current ledger window."""
    snapshot = _state(request).ctx.ledger.snapshot()
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(CSV_HEADER)
    for v in snapshot:
        writer.writerow(v.to_csv_row())
    buf.seek(0)
    return StreamingResponse(
        iter([buf.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=violations.csv"},
    )


@router.post("/system/start", response_model=SystemControlResponse)
def start_system(request: Request):
    """Start (or resume) detection on every camera."""
    engine = _engine(request)
    running = engine.start_all()
    return SystemControlResponse(active=engine.is_active, cameras_running=running)


@router.post("/system/stop", response_model=SystemControlResponse)
def stop_system(request: Request):
    """Pause detection; the ledger and API stay up."""
    engine = _engine(request)
    engine.stop_all(timeout=STOP_TIMEOUT_S)
    running = sum(1 for w in engine.workers if w.is_running)
    return SystemControlResponse(active=engine.is_active, cameras_running=running)
