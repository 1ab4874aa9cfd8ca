"""
FastAPI application factory for the violation monitor.

Routes:
- /api/violations            -> ledger snapshot (newest first)
- /api/violations/export.csv -> CSV export of the snapshot
- /api/stats                 -> per-type counts
- /api/status                -> model readiness and camera status
- /api/system/start          -> start every camera worker (POST)
- /api/system/stop           -> pause detection on every camera (POST)
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import api
from .state import SharedState


def create_app(web_state: Optional[SharedState] = None) -> FastAPI:
    """Create the FastAPI app bound to the given shared state."""
    app = FastAPI(
        title="Traffic Violation Monitor",
        version="0.1.0",
        description="Live violation ledger and system control",
    )

    # CORS for development (Vite dev server)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.state.web = web_state or SharedState()
    app.include_router(api.router, prefix="/api")
    return app
