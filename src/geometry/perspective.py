"""
Perspective mapping from the camera's view of the playfield to canonical space.

The calibration quad is recorded in scene (capture) pixels, ordered
TL, TR, BR, BL. When the capture resolution at runtime differs from the one
the quad was recorded at, the quad is rescaled before solving.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence, Tuple

import cv2
import numpy as np

from models.errors import InvalidCalibration
from models.profile import CanonicalSize

Point = Tuple[float, float]

# Minimum |cross product| (px^2) for three quad corners to count as non-collinear.
_COLLINEAR_EPS = 1e-6
_SINGULAR_EPS = 1e-12


def _rescale_quad(
    quad: Sequence[Point],
    scene_size: Optional[Tuple[int, int]],
    capture_size: Optional[Tuple[int, int]],
) -> np.ndarray:
    pts = np.asarray(quad, dtype=np.float64).reshape(-1, 2)
    if not scene_size or not capture_size:
        return pts
    sw, sh = scene_size
    cw, ch = capture_size
    if sw <= 0 or sh <= 0 or cw <= 0 or ch <= 0:
        return pts
    if (sw, sh) != (cw, ch):
        logging.info(f"Rescaling calibration quad from {sw}x{sh} to {cw}x{ch}")
    return pts * np.array([cw / sw, ch / sh], dtype=np.float64)


def _check_non_degenerate(pts: np.ndarray) -> None:
    for i in range(4):
        for j in range(i + 1, 4):
            if np.allclose(pts[i], pts[j]):
                raise InvalidCalibration(f"Quad corners {i} and {j} coincide: {pts[i].tolist()}")
    for i in range(4):
        a, b, c = pts[i], pts[(i + 1) % 4], pts[(i + 2) % 4]
        cross = (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])
        if abs(cross) <= _COLLINEAR_EPS:
            raise InvalidCalibration(
                f"Quad corners {i}, {(i + 1) % 4}, {(i + 2) % 4} are collinear"
            )


class PerspectiveMapper:
    """
    Projective transform from a scene-space quad to the canonical rectangle.

    Corner mapping: TL -> (0, 0), TR -> (W-1, 0), BR -> (W-1, H-1), BL -> (0, H-1).

    Raises:
        InvalidCalibration: If the quad does not have 4 points or is degenerate.
    """

    def __init__(
        self,
        quad: Sequence[Point],
        canonical: CanonicalSize,
        scene_size: Optional[Tuple[int, int]] = None,
        capture_size: Optional[Tuple[int, int]] = None,
    ):
        if len(quad) != 4:
            raise InvalidCalibration(f"Quad must have 4 points (TL, TR, BR, BL), got {len(quad)}")

        self.canonical = canonical
        self.quad = _rescale_quad(quad, scene_size, capture_size)
        _check_non_degenerate(self.quad)

        w, h = canonical.width, canonical.height
        dst = np.array(
            [[0, 0], [w - 1, 0], [w - 1, h - 1], [0, h - 1]],
            dtype=np.float32,
        )
        try:
            matrix = cv2.getPerspectiveTransform(self.quad.astype(np.float32), dst)
        except cv2.error as e:
            raise InvalidCalibration(f"Perspective solve failed: {e}") from e

        if not np.all(np.isfinite(matrix)) or abs(np.linalg.det(matrix)) < _SINGULAR_EPS:
            raise InvalidCalibration("Perspective solve produced a singular transform")

        self._matrix = matrix
        self._inverse = np.linalg.inv(matrix)
        logging.info(f"Perspective transform ready: canonical={w}x{h}")

    @property
    def matrix(self) -> np.ndarray:
        """3x3 scene -> canonical matrix."""
        return self._matrix

    @property
    def inverse(self) -> np.ndarray:
        """3x3 canonical -> scene matrix."""
        return self._inverse

    @staticmethod
    def _apply(matrix: np.ndarray, points: Iterable[Point]) -> np.ndarray:
        pts = np.asarray(list(points), dtype=np.float64).reshape(-1, 1, 2)
        if pts.size == 0:
            return np.empty((0, 2), dtype=np.float64)
        return cv2.perspectiveTransform(pts, matrix).reshape(-1, 2)

    def to_canonical(self, points: Iterable[Point]) -> np.ndarray:
        """Map scene-space points to canonical space; returns an (N, 2) array."""
        return self._apply(self._matrix, points)

    def to_scene(self, points: Iterable[Point]) -> np.ndarray:
        """Map canonical-space points back to scene space; returns an (N, 2) array."""
        return self._apply(self._inverse, points)
