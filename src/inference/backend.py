"""
Inference backend interface.

A backend is either Ready (holds a loaded model handle) or Unready. Loading is
idempotent while Ready and never raises; callers check `is_ready` and route
Unready cycles to the fallback generator.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from models.status import BackendStatus
from .errors import BackendError, BackendNotReady, ModelLoadError


class InferenceBackend(ABC):
    """Base class for model backends returning raw output buffers."""

    name = "backend"

    def __init__(self) -> None:
        self._status = BackendStatus.UNREADY
        self._load_lock = threading.Lock()
        self._handle_lost = False
        self._last_path: Optional[str] = None
        self._last_reload_attempt = 0.0
        self.load_count = 0

    @property
    def status(self) -> BackendStatus:
        return self._status

    @property
    def is_ready(self) -> bool:
        return self._status is BackendStatus.READY

    def load_model(self, path: Optional[str] = None) -> BackendStatus:
        """
        Attempt to acquire the model.

        No-op while Ready. While Unready, each call is a fresh attempt; failures
        are logged and reported as UNREADY.
        """
        with self._load_lock:
            if self._status is BackendStatus.READY:
                return self._status

            if path is not None:
                self._last_path = path
            try:
                self._load(self._last_path)
            except Exception as e:
                err = e if isinstance(e, ModelLoadError) else ModelLoadError(str(e))
                logging.error(f"Model load failed ({self.name}): {err}")
                self._status = BackendStatus.UNREADY
                return self._status

            self.load_count += 1
            self._handle_lost = False
            self._status = BackendStatus.READY
            logging.info(f"Model loaded ({self.name}): path={self._last_path}")
            return self._status

    def recover(self, min_interval_s: float = 30.0) -> BackendStatus:
        """
        Reload after a structural failure, at most once per interval.

        Backends that never loaded are left alone; only a lost handle triggers
        a reload attempt.
        """
        if self.is_ready or not self._handle_lost:
            return self._status
        now = time.monotonic()
        if now - self._last_reload_attempt < min_interval_s:
            return self._status
        self._last_reload_attempt = now
        logging.info(f"Attempting model reload ({self.name})")
        return self.load_model()

    def run(self, tensor: np.ndarray) -> np.ndarray:
        """
        Run inference on a preprocessed tensor.

        Raises:
            BackendNotReady: If called while Unready.
            BackendError: On a detectable inference failure. Structural errors
                also flip the backend to Unready.
        """
        if not self.is_ready:
            raise BackendNotReady(f"{self.name} backend is not ready")
        try:
            return self._run(tensor)
        except BackendError as e:
            if e.structural:
                self.mark_unready(str(e))
            raise

    def mark_unready(self, reason: str) -> None:
        """Drop the model handle after a structural failure."""
        with self._load_lock:
            if self._status is BackendStatus.UNREADY:
                return
            self._status = BackendStatus.UNREADY
            self._handle_lost = True
            self._release()
        logging.warning(f"Backend {self.name} marked unready: {reason}")

    @abstractmethod
    def _load(self, path: Optional[str]) -> None:
        """Acquire the model handle. Raise ModelLoadError on failure."""
        pass

    @abstractmethod
    def _run(self, tensor: np.ndarray) -> np.ndarray:
        """Run inference. Raise BackendError on failure."""
        pass

    def _release(self) -> None:
        """Release the model handle, if any."""
        pass


class UnavailableBackend(InferenceBackend):
    """Backend used when no model is configured; always Unready."""

    name = "unavailable"

    def _load(self, path: Optional[str]) -> None:
        raise ModelLoadError("No inference backend configured")

    def _run(self, tensor: np.ndarray) -> np.ndarray:  # pragma: no cover
        raise BackendNotReady("No inference backend configured")
