"""
Storage layer: calibration profiles on disk.
"""

from .profile_store import ProfileStore, resolve_lane_regions

__all__ = ["ProfileStore", "resolve_lane_regions"]
