"""
OpenCV-based frame source.

Handles webcams (integer index), RTSP/IP streams (URL) and video files
(path, rewound at end of file). Captures are converted from BGR to RGBA and
resized to the configured resolution, so every Frame from one source has the
same size.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

import cv2
import numpy as np

from models.frame import Frame
from .base import FrameSource, SourceConfig
from .rtsp_utils import sanitize_url

STREAM_SCHEMES = ("rtsp://", "rtsps://")
# Consecutive read failures that still trigger a reconnect attempt
MAX_RECONNECTS = 3


@dataclass
class OpenCVSourceConfig(SourceConfig):
    """
    Attributes:
        device_id: Webcam index, stream URL, or video file path.
        rtsp_transport: "tcp" or "udp" for RTSP streams.
        buffer_size: Capture buffer size for webcams (1 keeps frames fresh).
        max_retries: Attempts made by open() before giving up.
        loop_file: Rewind video files at end of stream instead of returning None.
    """
    device_id: Union[int, str] = 0
    rtsp_transport: str = "tcp"
    buffer_size: int = 1
    max_retries: int = 3
    loop_file: bool = True

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any]) -> "OpenCVSourceConfig":
        resolution = camera_cfg.get("resolution") or [1280, 720]
        return cls(
            source_id=str(camera_cfg.get("source_id", "camera")),
            resolution=(int(resolution[0]), int(resolution[1])),
            device_id=camera_cfg.get("device_id", 0),
            rtsp_transport=str(camera_cfg.get("rtsp_transport", "tcp")),
            buffer_size=int(camera_cfg.get("buffer_size", 1)),
            max_retries=max(1, int(camera_cfg.get("max_retries", 3))),
            loop_file=bool(camera_cfg.get("loop_file", True)),
        )


class OpenCVSource(FrameSource):
    """
    cv2.VideoCapture wrapped as a FrameSource.

    Example:
        config = OpenCVSourceConfig(source_id="Camera 1", device_id="rtsp://10.0.0.5/live")
        with OpenCVSource(config) as source:
            frame = source.capture()
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self.cfg = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._read_failures = 0

    @property
    def device_id(self) -> Union[int, str]:
        return self.cfg.device_id

    @property
    def is_rtsp(self) -> bool:
        return isinstance(self.device_id, str) and self.device_id.startswith(STREAM_SCHEMES)

    @property
    def is_file(self) -> bool:
        return isinstance(self.device_id, str) and not self.is_rtsp and os.path.exists(self.device_id)

    def open(self) -> None:
        if self._is_open:
            return

        attempts = self.cfg.max_retries
        for attempt in range(1, attempts + 1):
            if self._connect():
                break
            if attempt == attempts:
                raise RuntimeError(
                    f"Could not open {sanitize_url(self.device_id)} "
                    f"for {self.source_id} after {attempts} attempt(s)"
                )
            delay = min(2 ** attempt, 10)
            logging.warning(
                f"Open failed for {self.source_id} (attempt {attempt}/{attempts}), "
                f"retrying in {delay}s"
            )
            time.sleep(delay)

        self._is_open = True
        self._frame_index = 0
        logging.info(
            f"OpenCVSource opened: source_id={self.source_id}, "
            f"device={sanitize_url(self.device_id)}, resolution={self.resolution}"
        )

    def _connect(self) -> bool:
        """(Re)create the capture handle. Returns False if the device did not open."""
        self._release_capture()

        if self.is_rtsp:
            os.environ["OPENCV_FFMPEG_CAPTURE_OPTIONS"] = f"rtsp_transport;{self.cfg.rtsp_transport}"

        cap = cv2.VideoCapture(self.device_id)
        if not cap.isOpened():
            cap.release()
            return False

        if isinstance(self.device_id, int):
            w, h = self.resolution
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
            cap.set(cv2.CAP_PROP_BUFFERSIZE, self.cfg.buffer_size)

        self._cap = cap
        self._read_failures = 0
        return True

    def _read(self) -> Tuple[bool, Optional[np.ndarray]]:
        ok, bgr = self._cap.read()
        if (not ok or bgr is None) and self.is_file and self.cfg.loop_file:
            self._cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
            ok, bgr = self._cap.read()
        return bool(ok) and bgr is not None, bgr

    def capture(self) -> Optional[Frame]:
        if not self._is_open:
            return None
        if self._cap is None:
            # A previous reconnect failed
            self._on_read_failure()
            return None

        ok, bgr = self._read()
        if not ok:
            self._on_read_failure()
            return None

        self._read_failures = 0
        self._frame_index += 1
        return Frame.from_rgba(
            self._to_rgba(bgr),
            timestamp=time.time(),
            frame_index=self._frame_index,
            source_id=self.source_id,
        )

    def _on_read_failure(self) -> None:
        self._read_failures += 1
        if self.is_file:
            logging.info(f"End of video file: source_id={self.source_id}")
            return
        if self._read_failures > MAX_RECONNECTS:
            logging.error(
                f"Read failing repeatedly on {self.source_id} ({self._read_failures} in a row)"
            )
            return
        logging.warning(f"Read failed on {self.source_id}, reconnecting")
        if not self._connect():
            logging.error(f"Reconnect failed for {self.source_id}")

    def _to_rgba(self, bgr: np.ndarray) -> np.ndarray:
        w, h = self.resolution
        if bgr.shape[1] != w or bgr.shape[0] != h:
            bgr = cv2.resize(bgr, (w, h), interpolation=cv2.INTER_LINEAR)
        return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGBA)

    def _release_capture(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def close(self) -> None:
        self._release_capture()
        self._is_open = False
        logging.info(f"OpenCVSource closed: source_id={self.source_id}")
