"""
Lane regions rasterized into canonical-space masks.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import cv2
import numpy as np

from models.drain_event import Lane
from models.profile import CanonicalSize

Point = Tuple[float, float]


def rasterize_polygon(canonical: CanonicalSize, polygon: Sequence[Point]) -> np.ndarray:
    """Fill a polygon into a uint8 mask (255 inside, 0 outside). Empty polygon -> all zero."""
    mask = np.zeros((canonical.height, canonical.width), dtype=np.uint8)
    if len(polygon) == 0:
        return mask
    pts = np.round(np.asarray(polygon, dtype=np.float64)).astype(np.int32).reshape(-1, 1, 2)
    cv2.fillPoly(mask, [pts], 255)
    return mask


class RegionCatalog:
    """
    Named lane masks plus their union.

    Lookup order is the insertion order of ``polygons`` and never changes,
    so overlapping polygons resolve to the first lane.
    """

    def __init__(self, canonical: CanonicalSize, polygons: Mapping[Lane, Sequence[Point]]):
        self.canonical = canonical
        self._order: List[Lane] = list(polygons.keys())
        self._masks: Dict[Lane, np.ndarray] = {
            lane: rasterize_polygon(canonical, polygons[lane]) for lane in self._order
        }

        union = np.zeros((canonical.height, canonical.width), dtype=np.uint8)
        for mask in self._masks.values():
            union = cv2.bitwise_or(union, mask)
        self._union = union
        self._union_area = max(1, int(cv2.countNonZero(union)))

        for lane in self._order:
            if not cv2.countNonZero(self._masks[lane]):
                logging.warning(f"Lane {lane.value} has an empty region")

    @property
    def lanes(self) -> List[Lane]:
        return list(self._order)

    @property
    def union_mask(self) -> np.ndarray:
        return self._union

    @property
    def union_area(self) -> int:
        """Pixel count of the union mask, at least 1."""
        return self._union_area

    def mask(self, lane: Lane) -> np.ndarray:
        return self._masks[lane]

    def lane_at(self, x: float, y: float) -> Optional[Lane]:
        """Lane containing the pixel nearest (x, y), clamped to bounds; None if no lane."""
        px = min(max(int(round(x)), 0), self.canonical.width - 1)
        py = min(max(int(round(y)), 0), self.canonical.height - 1)
        for lane in self._order:
            if self._masks[lane][py, px] > 0:
                return lane
        return None
