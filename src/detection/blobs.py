"""
Blob extraction: round, reasonably sized foreground components -> centroids.
"""

from __future__ import annotations

import math
from typing import List, Optional

import numpy as np

from models.config import BlobConfig
from models.detection import Detection
from .base import ContourFinder


def circularity(area: float, perimeter: float) -> float:
    """4*pi*area / perimeter^2; 1.0 for a perfect circle."""
    if perimeter <= 0:
        return 0.0
    return 4.0 * math.pi * area / (perimeter * perimeter)


class BlobExtractor:
    """Filters contours by area and roundness and returns their centroids."""

    def __init__(self, finder: ContourFinder, config: Optional[BlobConfig] = None):
        self._finder = finder
        self._config = config or BlobConfig()
        self.last_contour_count = 0

    def extract(self, mask: np.ndarray) -> List[Detection]:
        """
        Args:
            mask: Binary foreground mask in canonical space.

        Returns:
            Centroids of accepted blobs (order not significant).
        """
        cfg = self._config
        contours = self._finder.find(mask)
        self.last_contour_count = len(contours)

        detections: List[Detection] = []
        for contour in contours:
            area = self._finder.area(contour)
            if area < cfg.min_area or area > cfg.max_area:
                continue
            perimeter = self._finder.perimeter(contour)
            if perimeter <= 0:
                continue
            if circularity(area, perimeter) < cfg.min_circularity:
                continue
            m00, m10, m01 = self._finder.moments(contour)
            if m00 == 0:
                continue
            detections.append(Detection(x=m10 / m00, y=m01 / m00))
        return detections
