"""
Observation layer for pluggable frame sources.

This layer abstracts where frames come from (camera, video file, synthetic
generator) from the processing pipeline. Each source implements the
FrameSource interface and returns Frame objects.
"""

from __future__ import annotations

from typing import Any, Dict

from .base import FrameSource, SourceConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig
from .synthetic_source import SyntheticSource, SyntheticSourceConfig


def create_source_from_config(camera_cfg: Dict[str, Any]) -> FrameSource:
    """
    Build a FrameSource from a `cameras[]` config entry.

    Raises:
        ValueError: If the backend is not one of: opencv, synthetic.
    """
    backend = camera_cfg.get("backend", "synthetic")
    if backend == "opencv":
        return OpenCVSource(OpenCVSourceConfig.from_camera_config(camera_cfg))
    if backend == "synthetic":
        return SyntheticSource(SyntheticSourceConfig.from_camera_config(camera_cfg))
    raise ValueError(f"Unknown camera backend: {backend}")


__all__ = [
    "FrameSource",
    "SourceConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "SyntheticSource",
    "SyntheticSourceConfig",
    "create_source_from_config",
]
