"""
Foreground motion detection in canonical space with nudge suppression.

A nudge is a global disturbance (camera bump, lighting flash) that lights up
a large part of the playfield at once. When the foreground inside the lanes
exceeds a fraction of the lane area, every frame is discarded until a short
suppression window has passed.
"""

from __future__ import annotations

import logging
from typing import Optional

import cv2
import numpy as np

from models.config import MotionConfig
from .base import ForegroundModel


class MotionDetector:
    """
    Produces the per-frame binary foreground mask restricted to the lanes.

    The suppression window is a single shared deadline for all lanes.
    """

    def __init__(
        self,
        model: ForegroundModel,
        union_mask: np.ndarray,
        union_area: int,
        config: Optional[MotionConfig] = None,
    ):
        """
        Args:
            model: Adaptive background model.
            union_mask: uint8 mask of all lanes (canonical space).
            union_area: Pixel count of union_mask (at least 1).
            config: Thresholds and suppression settings.
        """
        self._model = model
        self._union_mask = union_mask
        self._union_area = max(1, int(union_area))
        self._config = config or MotionConfig()
        self._window_s = self._config.nudge_window_ms / 1000.0
        self._trigger_pixels = self._config.nudge_fraction * self._union_area

        self.suppressed_until: float = float("-inf")
        self.last_foreground_pixels: int = 0
        self.nudge_count: int = 0

    def is_suppressed(self, now: float) -> bool:
        return now < self.suppressed_until

    def foreground_mask(self, frame: np.ndarray) -> np.ndarray:
        """Model update, binarize, denoise, restrict to lanes."""
        fg = self._model.apply(frame)
        _, binary = cv2.threshold(fg, self._config.binary_threshold, 255, cv2.THRESH_BINARY)
        binary = cv2.medianBlur(binary, self._config.median_ksize)
        return cv2.bitwise_and(binary, self._union_mask)

    def detect(self, frame: np.ndarray, now: float) -> Optional[np.ndarray]:
        """
        Process one canonical frame.

        Args:
            frame: Canonical-space frame.
            now: Current time in seconds.

        Returns:
            Binary mask, or None when the frame is discarded by nudge suppression.
        """
        mask = self.foreground_mask(frame)
        pixels = int(cv2.countNonZero(mask))
        self.last_foreground_pixels = pixels

        if pixels > self._trigger_pixels:
            if not self.is_suppressed(now):
                self.nudge_count += 1
                logging.info(
                    f"Nudge detected: foreground={pixels}px "
                    f"({pixels / self._union_area:.0%} of lanes), suppressing"
                )
            self.suppressed_until = now + self._window_s

        if self.is_suppressed(now):
            return None
        return mask
