"""
Inference layer: preprocessing, model backends, decoding and fallback.
"""

from .errors import (
    ViolationPipelineError,
    PreconditionError,
    BackendError,
    BackendNotReady,
    ModelLoadError,
    DecodeAnomaly,
)
from .preprocess import Preprocessor, LetterboxInfo, preprocess, validate_frame
from .backend import InferenceBackend, UnavailableBackend
from .onnx_backend import OnnxBackend, OnnxConfig
from .decoder import DetectionDecoder, percent_confidence
from .fallback import FallbackGenerator

__all__ = [
    "ViolationPipelineError",
    "PreconditionError",
    "BackendError",
    "BackendNotReady",
    "ModelLoadError",
    "DecodeAnomaly",
    "Preprocessor",
    "LetterboxInfo",
    "preprocess",
    "validate_frame",
    "InferenceBackend",
    "UnavailableBackend",
    "OnnxBackend",
    "OnnxConfig",
    "DetectionDecoder",
    "percent_confidence",
    "FallbackGenerator",
]
