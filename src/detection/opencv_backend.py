"""
OpenCV implementations of the detection capability interfaces.
"""

from __future__ import annotations

import logging
from typing import Any, List, Tuple

import cv2
import numpy as np

from models.config import MotionConfig
from .base import ContourFinder, ForegroundModel


class Mog2ForegroundModel(ForegroundModel):
    """Foreground model backed by cv2.BackgroundSubtractorMOG2."""

    def __init__(self, history: int = 500, var_threshold: float = 16.0, detect_shadows: bool = False):
        self.history = history
        self.var_threshold = var_threshold
        self.detect_shadows = detect_shadows
        self._subtractor = self._create()
        logging.info(
            f"MOG2 background model initialized (history={history}, "
            f"var_threshold={var_threshold}, shadows={detect_shadows})"
        )

    @classmethod
    def from_config(cls, cfg: MotionConfig) -> "Mog2ForegroundModel":
        return cls(
            history=int(cfg.history),
            var_threshold=float(cfg.var_threshold),
            detect_shadows=bool(cfg.detect_shadows),
        )

    def _create(self):
        return cv2.createBackgroundSubtractorMOG2(
            history=self.history,
            varThreshold=self.var_threshold,
            detectShadows=self.detect_shadows,
        )

    def apply(self, frame: np.ndarray) -> np.ndarray:
        return self._subtractor.apply(frame)


class OpenCVContourFinder(ContourFinder):
    """External contours via cv2.findContours."""

    def find(self, mask: np.ndarray) -> List[Any]:
        contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        return list(contours)

    def area(self, contour: Any) -> float:
        return float(cv2.contourArea(contour))

    def perimeter(self, contour: Any) -> float:
        return float(cv2.arcLength(contour, True))

    def moments(self, contour: Any) -> Tuple[float, float, float]:
        m = cv2.moments(contour)
        return (m["m00"], m["m10"], m["m01"])
