"""
Typed models for the drain monitor.
"""

from .frame import FrameData
from .detection import Detection
from .track import Track, TrackState
from .drain_event import DrainEvent, DrainSource, Lane
from .errors import ConfigurationError, DrainMonitorError, InvalidCalibration, ProfileNotFound
from .profile import ActiveProfile, CameraProfile, CanonicalSize, GameProfile
from .config import (
    Config,
    CameraConfig,
    MotionConfig,
    BlobConfig,
    TrackingConfig,
    LaneConfig,
    PipelineSettings,
    ProfilesConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection / tracking
    "Detection",
    "Track",
    "TrackState",
    # Events
    "DrainEvent",
    "DrainSource",
    "Lane",
    # Errors
    "DrainMonitorError",
    "ConfigurationError",
    "InvalidCalibration",
    "ProfileNotFound",
    # Profiles
    "ActiveProfile",
    "CameraProfile",
    "CanonicalSize",
    "GameProfile",
    # Config
    "Config",
    "CameraConfig",
    "MotionConfig",
    "BlobConfig",
    "TrackingConfig",
    "LaneConfig",
    "PipelineSettings",
    "ProfilesConfig",
    "WebConfig",
]
