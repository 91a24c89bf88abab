"""
Capability interfaces over the image-processing library.

The detection stages only talk to these interfaces, so any library that
provides an adaptive background model and contour extraction can back them:
- ForegroundModel: per-frame foreground confidence map
- ContourFinder: external contours plus area, perimeter and moments
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Tuple

import numpy as np


class ForegroundModel(ABC):
    """Adaptive background model: update with a frame, get its foreground map."""

    @abstractmethod
    def apply(self, frame: np.ndarray) -> np.ndarray:
        """
        Update the model with ``frame`` and return a uint8 foreground map.

        255 marks foreground; lower values mark background (or shadow, if the
        model tags shadows).
        """


class ContourFinder(ABC):
    """External connected-component contours of a binary mask."""

    @abstractmethod
    def find(self, mask: np.ndarray) -> List[Any]:
        """Return the external contours of ``mask``."""

    @abstractmethod
    def area(self, contour: Any) -> float:
        pass

    @abstractmethod
    def perimeter(self, contour: Any) -> float:
        """Closed arc length of the contour."""

    @abstractmethod
    def moments(self, contour: Any) -> Tuple[float, float, float]:
        """Return (m00, m10, m01)."""
