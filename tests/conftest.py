"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import cv2
import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from detection.base import ForegroundModel  # noqa: E402
from models.drain_event import Lane  # noqa: E402
from models.profile import CameraProfile, CanonicalSize, GameProfile  # noqa: E402


class ScriptedForegroundModel(ForegroundModel):
    """
    Foreground model that ignores the frame and returns scripted masks.

    Each entry in ``script`` is either None (empty mask), a list of
    (x, y) ball centres, or the string "flash" (everything foreground).
    """

    def __init__(self, size: CanonicalSize, script=None, radius: int = 5):
        self.size = size
        self.script = list(script or [])
        self.radius = radius
        self.calls = 0

    def apply(self, frame):
        mask = np.zeros((self.size.height, self.size.width), dtype=np.uint8)
        step = self.script[self.calls] if self.calls < len(self.script) else None
        self.calls += 1
        if step == "flash":
            mask[:] = 255
        elif step:
            for x, y in step:
                cv2.circle(mask, (int(x), int(y)), self.radius, 255, -1)
        return mask


@pytest.fixture
def canonical():
    return CanonicalSize(width=400, height=300)


@pytest.fixture
def scene_quad():
    return [(100, 100), (500, 100), (500, 400), (100, 400)]


@pytest.fixture
def three_lane_polygons():
    """L / C / R strips across the bottom of a 400x300 canonical space."""
    return {
        Lane.LEFT: [(0, 200), (132, 200), (132, 299), (0, 299)],
        Lane.CENTER: [(134, 200), (265, 200), (265, 299), (134, 299)],
        Lane.RIGHT: [(267, 200), (399, 200), (399, 299), (267, 299)],
    }


@pytest.fixture
def camera_profile(scene_quad):
    return CameraProfile(id="test-cam", name="Test cam", quad=scene_quad, scene_size=(640, 480))


@pytest.fixture
def game_profile(canonical):
    return GameProfile(
        id="test-game",
        name="Test game",
        canonical=canonical,
        regions={
            "leftOutlane": [[0, 200], [132, 200], [132, 299], [0, 299]],
            "centerDrain": [[134, 200], [265, 200], [265, 299], [134, 299]],
            "rightOutlane": [[267, 200], [399, 200], [399, 299], [267, 299]],
        },
    )


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    
    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  device_id: 0
  resolution: [640, 480]
  fps: 30

motion:
  nudge_fraction: 0.25

lanes:
  cooldown_ms: 600

web:
  port: 5173

log_path: "logs/test.log"
log_level: "INFO"
""")
    
    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
        },
        "motion": {
            "history": 500,
            "binary_threshold": 200,
            "median_ksize": 3,
            "nudge_fraction": 0.25,
            "nudge_window_ms": 250,
        },
        "blobs": {"min_area": 8, "max_area": 600, "min_circularity": 0.5},
        "tracking": {"max_distance_px": 40, "max_age_frames": 8},
        "lanes": {"cooldown_ms": 600, "confidence": 0.8, "required": ["L", "C", "R"]},
        "pipeline": {"target_fps": 30},
        "web": {"enabled": True, "host": "127.0.0.1", "port": 5173},
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
