"""
Centroid tracking for detected blobs.
"""

from __future__ import annotations

from .tracker import ObjectTracker, VELOCITY_EPSILON

__all__ = ["ObjectTracker", "VELOCITY_EPSILON"]
