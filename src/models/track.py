"""
Track models for centroid tracking state.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Track:
    """
    A tracked object across video frames.

    Owned and mutated exclusively by ObjectTracker.

    Attributes:
        track_id: Unique, monotonically increasing identifier.
        x: Current x position in canonical space.
        y: Current y position in canonical space.
        vx: Horizontal displacement at the last match (px/frame).
        vy: Vertical displacement at the last match (px/frame, positive = down).
        has_velocity: Whether the last match moved the track by more than epsilon.
        age: Frames since the last matched detection.
    """
    track_id: int
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    has_velocity: bool = False
    age: int = 0

    def snapshot(self) -> "TrackState":
        return TrackState(
            track_id=self.track_id,
            x=self.x,
            y=self.y,
            vx=self.vx,
            vy=self.vy,
            has_velocity=self.has_velocity,
            age=self.age,
        )


@dataclass(frozen=True)
class TrackState:
    """Immutable snapshot of a Track handed to downstream stages."""
    track_id: int
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    has_velocity: bool = False
    age: int = 0
