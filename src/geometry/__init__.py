"""
Calibration geometry: perspective correction and lane regions.
"""

from .perspective import PerspectiveMapper
from .regions import RegionCatalog
from .normalizer import FrameNormalizer

__all__ = ["PerspectiveMapper", "RegionCatalog", "FrameNormalizer"]
