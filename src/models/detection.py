"""
Per-frame detection in canonical space.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Detection:
    """
    Centroid of an accepted foreground blob.

    Produced fresh for every frame and never retained across frames.
    """
    x: float
    y: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)
