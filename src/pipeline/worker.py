"""
Per-camera periodic worker.

Each camera gets its own thread ticking at a fixed cadence. A tick that
fires while the previous cycle is still running is dropped, not queued:
stale frames are worthless for a live feed.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional

from models.status import CameraStats
from observation.base import FrameSource
from pipeline.cycle import CameraPipeline, CycleResult

CycleListener = Callable[[CycleResult], None]


class CameraWorker:
    """
    Drives one CameraPipeline from one FrameSource.

    Guarantees at most one in-flight cycle per camera. stop() waits for an
    in-flight cycle to finish and no cycle starts once stop() has returned.

    Example:
        worker = CameraWorker(source, CameraPipeline("Camera 1", ctx), interval_s=2.0)
        worker.start()
        ...
        worker.stop()
    """

    def __init__(
        self,
        source: FrameSource,
        pipeline: CameraPipeline,
        interval_s: float = 2.0,
    ):
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.source = source
        self.pipeline = pipeline
        self.interval_s = interval_s
        self.stats = CameraStats(source_id=source.source_id)
        self._in_flight = threading.Lock()
        self._cycle_thread: Optional[threading.Thread] = None
        self._stats_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._start_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._callbacks: List[CycleListener] = []

    @property
    def source_id(self) -> str:
        return self.source.source_id

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def add_callback(self, callback: CycleListener) -> None:
        """Add a callback invoked after every completed cycle."""
        self._callbacks.append(callback)

    def start(self) -> None:
        """Open the source and begin ticking. No-op if already running."""
        with self._start_lock:
            if self.is_running:
                return
            self.source.open()
            # Fresh event per run; a thread from an earlier run keeps its own
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._stop_event,),
                name=f"camera-{self.source_id}",
                daemon=True,
            )
            with self._stats_lock:
                self.stats.running = True
            self._thread.start()
        logging.info(f"Camera worker started: source_id={self.source_id}, interval={self.interval_s}s")

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop ticking, wait for any in-flight cycle, then close the source.

        Safe to call from a cycle callback: the calling cycle is already past
        its insert, so it is not waited on. `timeout` bounds the whole wait.
        """
        self._stop_event.set()
        deadline = None if timeout is None else time.monotonic() + timeout
        current = threading.current_thread()

        thread = self._thread
        if thread is not None and thread is not current:
            thread.join(timeout)

        # Wait out a cycle started via tick() from another thread
        if self._cycle_thread is not current:
            remaining = -1 if deadline is None else max(0.0, deadline - time.monotonic())
            if self._in_flight.acquire(timeout=remaining):
                self._in_flight.release()
            else:
                logging.warning(f"Timed out waiting for in-flight cycle on {self.source_id}")
        self._thread = None
        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source {self.source_id}: {e}")
        with self._stats_lock:
            self.stats.running = False
        logging.info(f"Camera worker stopped: source_id={self.source_id}")

    def tick(self) -> Optional[CycleResult]:
        """
        Run one cycle unless one is already in flight or the worker is stopped.

        Returns:
            The cycle result, or None if the tick was skipped or failed.
        """
        if self._stop_event.is_set():
            return None
        if not self._in_flight.acquire(blocking=False):
            with self._stats_lock:
                self.stats.skipped_ticks += 1
            logging.debug(f"Tick skipped for {self.source_id}: cycle still in flight")
            return None

        self._cycle_thread = threading.current_thread()
        try:
            if self._stop_event.is_set():
                return None
            return self._cycle()
        finally:
            self._cycle_thread = None
            self._in_flight.release()

    def snapshot_stats(self) -> CameraStats:
        with self._stats_lock:
            return CameraStats(**self.stats.to_dict())

    def _cycle(self) -> Optional[CycleResult]:
        ctx = self.pipeline.ctx
        ctx.backend.recover(ctx.reload_interval_s)

        try:
            frame = self.source.capture()
            if frame is None:
                logging.warning(f"No frame available from {self.source_id}")
                with self._stats_lock:
                    self.stats.failed_cycles += 1
                return None
            result = self.pipeline.process(frame)
        except Exception:
            logging.exception(f"Cycle error for {self.source_id}")
            with self._stats_lock:
                self.stats.failed_cycles += 1
            return None

        with self._stats_lock:
            self.stats.cycles += 1
            self.stats.last_cycle_ts = time.time()
            if result.skipped:
                self.stats.failed_cycles += 1
            if result.used_fallback:
                self.stats.fallback_cycles += 1
            self.stats.violations += len(result.violations)

        for callback in self._callbacks:
            try:
                callback(result)
            except Exception as e:
                logging.warning(f"Callback error: {e}")
        return result

    def _run(self, stop_event: threading.Event) -> None:
        next_tick = time.monotonic()
        while not stop_event.wait(max(0.0, next_tick - time.monotonic())):
            self.tick()
            next_tick += self.interval_s
            now = time.monotonic()
            if now > next_tick:
                # Overran one or more periods; drop those ticks
                missed = int((now - next_tick) // self.interval_s) + 1
                with self._stats_lock:
                    self.stats.skipped_ticks += missed
                next_tick += missed * self.interval_s
                logging.debug(f"Cycle overran for {self.source_id}, dropped {missed} tick(s)")
