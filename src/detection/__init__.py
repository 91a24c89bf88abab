"""
Drain Monitor - Detection Module

Foreground motion and blob extraction in canonical space.
"""

from .base import ContourFinder, ForegroundModel
from .blobs import BlobExtractor
from .motion import MotionDetector
from .opencv_backend import Mog2ForegroundModel, OpenCVContourFinder

__all__ = [
    "ContourFinder",
    "ForegroundModel",
    "BlobExtractor",
    "MotionDetector",
    "Mog2ForegroundModel",
    "OpenCVContourFinder",
]
