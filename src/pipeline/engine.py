"""
Pipeline engine for the violation monitor.

Owns one CameraWorker per camera source. Workers are independent periodic
tasks coordinated only through the shared ViolationLedger; there is no global
tick loop.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, List, Optional

from models.status import CameraStats, Status
from observation import FrameSource, create_source_from_config
from pipeline.cycle import CameraPipeline
from pipeline.worker import CameraWorker, CycleListener
from runtime.context import RuntimeContext


class PipelineEngine:
    """
    Runs every configured camera against the shared runtime context.

    Example:
        ctx = create_context_from_config(config)
        ctx.backend.load_model()
        engine = create_engine_from_config(config, ctx)
        engine.run()
    """

    def __init__(self, ctx: RuntimeContext):
        self.ctx = ctx
        self._workers: Dict[str, CameraWorker] = {}
        self._callbacks: List[CycleListener] = []
        self._shutdown = threading.Event()
        self._active = False

    @property
    def is_active(self) -> bool:
        """True between a successful start_all() and the next stop_all()."""
        return self._active

    @property
    def workers(self) -> List[CameraWorker]:
        return list(self._workers.values())

    def add_callback(self, callback: CycleListener) -> None:
        """
        Add a callback to be called after each camera cycle.

        Applies to cameras added before and after this call.
        """
        self._callbacks.append(callback)
        for worker in self._workers.values():
            worker.add_callback(callback)

    def add_camera(self, source: FrameSource, interval_s: float = 2.0) -> CameraWorker:
        """Register a camera source. Source ids must be unique."""
        if source.source_id in self._workers:
            raise ValueError(f"Duplicate camera source_id: {source.source_id}")
        worker = CameraWorker(source, CameraPipeline(source.source_id, self.ctx), interval_s)
        for callback in self._callbacks:
            worker.add_callback(callback)
        self._workers[source.source_id] = worker
        return worker

    def get_worker(self, source_id: str) -> Optional[CameraWorker]:
        return self._workers.get(source_id)

    def start_all(self) -> int:
        """
        Start every camera worker.

        A camera that fails to open is logged and left stopped; the others
        still run. Returns the number of running workers.
        """
        started = 0
        for worker in self._workers.values():
            try:
                worker.start()
                started += 1
            except Exception as e:
                logging.error(f"Failed to start camera {worker.source_id}: {e}")
        self._active = started > 0
        mode = "model" if self.ctx.backend_ready else "fallback"
        logging.info(f"Pipeline started: cameras={started}/{len(self._workers)}, mode={mode}")
        return started

    def stop_all(self, timeout: Optional[float] = None) -> None:
        """
        Stop every worker; returns once no camera can insert anything new.

        Detection is paused, not shut down: start_all() resumes it and run()
        keeps blocking until stop().
        """
        self._active = False
        for worker in self._workers.values():
            worker.stop(timeout)
        logging.info("Pipeline stopped")

    def run(self) -> None:
        """Start all cameras and block until stop() or Ctrl+C."""
        if self.start_all() == 0:
            logging.error("No camera could be started")
            return
        try:
            while not self._shutdown.wait(1.0):
                pass
        except KeyboardInterrupt:
            logging.info("Pipeline interrupted by user")
        finally:
            self.stop_all()

    def stop(self) -> None:
        """Signal run() to return."""
        self._shutdown.set()

    def camera_stats(self) -> List[CameraStats]:
        return [w.snapshot_stats() for w in self._workers.values()]

    def status(self) -> Status:
        return Status.derive(
            backend_ready=self.ctx.backend_ready,
            cameras=self.camera_stats(),
            uptime_seconds=self.ctx.uptime_seconds(),
            timestamp=time.time(),
        )


def create_engine_from_config(config: Dict[str, Any], ctx: RuntimeContext) -> PipelineEngine:
    """
    Factory function to create a PipelineEngine from the config dict.

    Args:
        config: Full application config dict.
        ctx: RuntimeContext with backend, ledger, etc.
    """
    engine = PipelineEngine(ctx)
    for camera_cfg in config.get("cameras", []) or []:
        source = create_source_from_config(camera_cfg)
        engine.add_camera(source, interval_s=float(camera_cfg.get("interval_s", 2.0)))
    return engine
