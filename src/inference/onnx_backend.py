"""
ONNX Runtime inference backend.

Runs a YOLO-style violation model exported to ONNX. onnxruntime is imported
lazily so the rest of the pipeline stays usable (in fallback mode) on machines
without it.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

import numpy as np

from .backend import InferenceBackend
from .errors import BackendError, ModelLoadError

PREFERRED_INPUT_NAME = "images"
PREFERRED_OUTPUT_NAMES = ("output0", "output")


@dataclass(frozen=True)
class OnnxConfig:
    model_path: str
    input_size: int = 640
    providers: Sequence[str] = field(default_factory=lambda: ("CPUExecutionProvider",))


class OnnxBackend(InferenceBackend):
    name = "onnx"

    def __init__(self, cfg: OnnxConfig):
        super().__init__()
        self.cfg = cfg
        self._last_path = cfg.model_path
        self._session: Any = None
        self._input_name: Optional[str] = None
        self._output_name: Optional[str] = None

    def _load(self, path: Optional[str]) -> None:
        model_path = path or self.cfg.model_path
        if not model_path or not os.path.exists(model_path):
            raise ModelLoadError(f"Model file not found: {model_path}")

        try:
            import onnxruntime as ort  # type: ignore
        except ImportError as e:
            raise ModelLoadError(
                "onnxruntime is not installed. Install with `pip install onnxruntime`."
            ) from e

        try:
            session = ort.InferenceSession(model_path, providers=list(self.cfg.providers))
        except Exception as e:
            raise ModelLoadError(f"Failed to create inference session: {e}") from e

        input_names: List[str] = [i.name for i in session.get_inputs()]
        output_names: List[str] = [o.name for o in session.get_outputs()]
        if not input_names or not output_names:
            raise ModelLoadError(f"Model {model_path} has no inputs or outputs")

        self._input_name = PREFERRED_INPUT_NAME if PREFERRED_INPUT_NAME in input_names else input_names[0]
        self._output_name = next(
            (n for n in PREFERRED_OUTPUT_NAMES if n in output_names), output_names[0]
        )
        self._session = session
        logging.debug(
            f"ONNX session ready: input={self._input_name}, output={self._output_name}, "
            f"providers={session.get_providers()}"
        )

    def _run(self, tensor: np.ndarray) -> np.ndarray:
        session = self._session
        if session is None:
            raise BackendError("Inference session handle lost", structural=True)

        expected = (1, 3, self.cfg.input_size, self.cfg.input_size)
        if tensor.shape != expected:
            raise BackendError(f"Tensor shape {tensor.shape} does not match model input {expected}")

        try:
            (raw,) = session.run([self._output_name], {self._input_name: tensor.astype(np.float32)})
        except Exception as e:
            raise BackendError(f"Inference failed: {e}") from e

        raw = np.asarray(raw, dtype=np.float32)
        if not np.all(np.isfinite(raw)):
            raise BackendError("Model output contains non-finite values")
        return raw

    def _release(self) -> None:
        self._session = None
