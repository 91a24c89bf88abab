"""
OpenCV-based observation source.

Supports:
- capture devices (device_id as int, e.g., 0 for a virtual camera)
- network streams (device_id as URL: rtsp://, http://, ...)
- video files (device_id as file path)
"""

from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import cv2
import numpy as np

from models.config import CameraConfig
from models.frame import FrameData
from .base import ObservationSource, ObservationConfig

_CREDENTIALS_RE = re.compile(r"(//)[^/@]+@")

# Failed reads between reconnect attempts double after each failed attempt
MAX_RECONNECT_INTERVAL = 32


def sanitize_device(device_id: Union[int, str]) -> str:
    """Hide credentials embedded in a stream URL for logging."""
    return _CREDENTIALS_RE.sub(r"\1***@", str(device_id))


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Configuration for OpenCV-based observation sources.
    
    Attributes:
        device_id: Device index (int), stream URL (str), or file path (str).
        max_retries: Attempts when opening the capture.
        rotate: Rotation in degrees (0, 90, 180, 270).
        flip_horizontal: Flip frame horizontally.
        flip_vertical: Flip frame vertically.
    """
    device_id: Union[int, str] = 0
    max_retries: int = 3
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_camera_config(cls, camera: CameraConfig, source_id: str = "camera") -> "OpenCVSourceConfig":
        """Adapter: Create from the typed camera config section."""
        return cls(
            source_id=source_id,
            resolution=tuple(camera.resolution) if camera.resolution else None,
            fps=camera.fps,
            device_id=camera.device_id,
            max_retries=max(1, int(camera.max_retries)),
            rotate=camera.rotate or 0,
            flip_horizontal=camera.flip_horizontal,
            flip_vertical=camera.flip_vertical,
        )


class OpenCVSource(ObservationSource):
    """
    Wraps cv2.VideoCapture to provide frames as FrameData objects.
    
    Camera and stream sources reconnect after read failures; for files a
    failed read means end of video.
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._consecutive_failures = 0
        self._reconnect_interval = 1
        self._next_reconnect_at = 1

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    @property
    def is_stream(self) -> bool:
        return isinstance(self.device_id, str) and "://" in self.device_id

    @property
    def is_file(self) -> bool:
        return (
            isinstance(self.device_id, str)
            and not self.is_stream
            and os.path.exists(self.device_id)
        )

    @property
    def capture_size(self) -> Optional[Tuple[int, int]]:
        if self._cap is None or not self._cap.isOpened():
            return None
        w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        if w <= 0 or h <= 0:
            return None
        if self._opencv_config.rotate in (90, 270):
            return (h, w)
        return (w, h)

    def open(self) -> None:
        if self._is_open:
            return
        
        self._initialize(retry_count=0)
        self._reset_reconnect_backoff()
        self._is_open = True
        self._frame_index = 0
        
        logging.info(
            f"OpenCVSource opened: source_id={self.source_id}, "
            f"device={sanitize_device(self.device_id)}, capture_size={self.capture_size}"
        )

    def _initialize(self, retry_count: int = 0, max_attempts: Optional[int] = None) -> None:
        """Initialize or reinitialize the capture device."""
        attempts = max_attempts or self._opencv_config.max_retries
        if self._cap is not None:
            self._cap.release()
            self._cap = None

        if retry_count > 0:
            wait_time = min(2 ** retry_count, 10)
            logging.info(
                f"Retrying capture open (attempt {retry_count + 1}/"
                f"{attempts}) after {wait_time}s"
            )
            time.sleep(wait_time)

        self._cap = cv2.VideoCapture(self.device_id)

        if not self._cap.isOpened():
            if retry_count < attempts - 1:
                logging.warning(f"Failed to open {sanitize_device(self.device_id)}, retrying...")
                return self._initialize(retry_count + 1, attempts)
            raise RuntimeError(
                f"Failed to open {sanitize_device(self.device_id)} after "
                f"{attempts} attempts"
            )

        # Resolution/fps hints only apply to local devices
        if isinstance(self.device_id, int) and self._opencv_config.resolution:
            w, h = self._opencv_config.resolution
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
            if self._opencv_config.fps:
                self._cap.set(cv2.CAP_PROP_FPS, self._opencv_config.fps)
            logging.info(
                f"Camera actual settings - Resolution: "
                f"({self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)}x{self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)}), "
                f"FPS: {self._cap.get(cv2.CAP_PROP_FPS)}"
            )
        
        self._consecutive_failures = 0

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._cap is None:
            return None

        if not self._cap.isOpened():
            self._consecutive_failures += 1
            if not self._reconnect_due():
                return None
            logging.warning("Capture not opened, attempting to reinitialize")
            if not self._reconnect():
                return None

        ret, frame = self._cap.read()

        if not ret or frame is None:
            self._consecutive_failures += 1

            if self.is_file:
                if self._consecutive_failures == 1:
                    logging.info("End of video file reached")
                return None

            if self._reconnect_due():
                logging.warning(
                    f"Failed to read frame (failures: {self._consecutive_failures}), reinitializing..."
                )
                self._reconnect()
            return None

        self._consecutive_failures = 0
        self._reset_reconnect_backoff()
        frame = self._apply_transforms(frame)
        self._frame_index += 1

        return FrameData(
            frame=frame,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def _reconnect_due(self) -> bool:
        return self._consecutive_failures >= self._next_reconnect_at

    def _reset_reconnect_backoff(self) -> None:
        self._reconnect_interval = 1
        self._next_reconnect_at = 1

    def _reconnect(self) -> bool:
        """
        Single reopen attempt. After a failure the next attempt waits twice as
        many failed reads. The backoff only resets once a frame is read, so a
        device that opens but never delivers is not reopened on every read.
        """
        failures = self._consecutive_failures
        try:
            self._initialize(max_attempts=1)
        except RuntimeError as e:
            self._reconnect_interval = min(self._reconnect_interval * 2, MAX_RECONNECT_INTERVAL)
            self._next_reconnect_at = failures + self._reconnect_interval
            logging.error(
                f"Reinitialization failed: {e} "
                f"(next attempt in {self._reconnect_interval} reads)"
            )
            return False

        # _initialize restarted the failure count
        self._next_reconnect_at = self._reconnect_interval
        logging.info(f"Reconnected to {sanitize_device(self.device_id)} after {failures} failed reads")
        return True

    def _apply_transforms(self, frame: np.ndarray) -> np.ndarray:
        """Apply configured rotation and flips."""
        cfg = self._opencv_config

        if cfg.rotate == 90:
            frame = cv2.rotate(frame, cv2.ROTATE_90_CLOCKWISE)
        elif cfg.rotate == 180:
            frame = cv2.rotate(frame, cv2.ROTATE_180)
        elif cfg.rotate == 270:
            frame = cv2.rotate(frame, cv2.ROTATE_90_COUNTERCLOCKWISE)

        if cfg.flip_horizontal or cfg.flip_vertical:
            if cfg.flip_horizontal and cfg.flip_vertical:
                flip_code = -1
            elif cfg.flip_horizontal:
                flip_code = 1
            else:
                flip_code = 0
            frame = cv2.flip(frame, flip_code)

        return frame

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._is_open = False
        logging.info(f"OpenCVSource closed: source_id={self.source_id}")
