"""
FrameSource interface for pluggable camera/video sources.

The pipeline only needs `capture() -> Frame` with a stable width and height
per source. Sources may be:
- USB/RTSP cameras or video files (OpenCV)
- Synthetic frame generators (demo and tests)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple

from models.frame import Frame


@dataclass
class SourceConfig:
    """
    Base configuration for frame sources.

    Attributes:
        source_id: Unique identifier for this source (e.g., "Camera 1").
        resolution: Output resolution as (width, height). Every captured frame
            has exactly this size.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    resolution: Tuple[int, int] = (1280, 720)
    metadata: Dict[str, Any] = field(default_factory=dict)


class FrameSource(ABC):
    """
    Abstract base class for frame sources.

    Lifecycle:
        1. Create instance with config
        2. Call open() to initialize the source
        3. Call capture() once per processing cycle
        4. Call close() to release resources

    Can also be used as a context manager:
        with SyntheticSource(config) as source:
            frame = source.capture()
    """

    def __init__(self, config: SourceConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        """Unique identifier for this source."""
        return self._config.source_id

    @property
    def resolution(self) -> Tuple[int, int]:
        return self._config.resolution

    @property
    def is_open(self) -> bool:
        """Whether the source is currently open and ready to capture."""
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Number of frames captured since open."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Open/initialize the source.

        Raises:
            RuntimeError: If the source cannot be opened.
        """
        pass

    @abstractmethod
    def capture(self) -> Optional[Frame]:
        """
        Capture the current frame.

        Returns:
            An RGBA Frame, or None if no frame is available right now.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release resources. Safe to call multiple times."""
        pass

    def __enter__(self) -> "FrameSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[Frame]:
        """Yield frames until the source is exhausted."""
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")

        while True:
            frame = self.capture()
            if frame is None:
                break
            yield frame
