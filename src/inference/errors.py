"""
Error taxonomy for the frame-to-violation pipeline.

Every error here is scoped to a single processing cycle; none of them should
take down a camera worker or the process.
"""

from __future__ import annotations


class ViolationPipelineError(Exception):
    """Base class for pipeline errors."""


class PreconditionError(ViolationPipelineError):
    """Malformed frame (zero/negative dimension or mismatched buffer)."""


class BackendError(ViolationPipelineError):
    """
    Inference call failed.

    Attributes:
        structural: True when the backend lost its model handle and must be
            reloaded before it can serve again. Transient errors leave the
            backend Ready.
    """

    def __init__(self, message: str, structural: bool = False):
        super().__init__(message)
        self.structural = structural


class BackendNotReady(BackendError):
    """run() called while the backend is Unready."""


class ModelLoadError(ViolationPipelineError):
    """Model artifact could not be loaded."""


class DecodeAnomaly(ViolationPipelineError):
    """Raw output length is inconsistent with the expected stride."""
