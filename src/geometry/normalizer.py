"""
Warp captured frames into canonical space.
"""

from __future__ import annotations

import cv2
import numpy as np

from .perspective import PerspectiveMapper


class FrameNormalizer:
    """Applies a PerspectiveMapper's transform to whole frames."""

    def __init__(self, mapper: PerspectiveMapper):
        self._mapper = mapper
        self._dsize = (mapper.canonical.width, mapper.canonical.height)

    def normalize(self, frame: np.ndarray) -> np.ndarray:
        return cv2.warpPerspective(frame, self._mapper.matrix, self._dsize, flags=cv2.INTER_LINEAR)
