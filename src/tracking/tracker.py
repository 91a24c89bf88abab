"""
Centroid tracking across video frames.

Tracks are matched to detections greedily: each track, in creation order,
takes the nearest unclaimed detection within the match radius. This is not a
globally optimal assignment; when two tracks compete for one detection the
older track wins.

Lane classification is NOT done here. See `algorithms.lanes.LaneClassifier`.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence, Tuple, Union

from models.detection import Detection
from models.track import Track, TrackState

# |vx| + |vy| must exceed this for a match to count as movement.
VELOCITY_EPSILON = 0.01

DetectionLike = Union[Detection, Tuple[float, float]]


def _as_point(det: DetectionLike) -> Tuple[float, float]:
    if isinstance(det, Detection):
        return det.as_tuple()
    return (float(det[0]), float(det[1]))


class ObjectTracker:
    """
    Assigns per-frame centroids to persistent tracks.

    Track lifecycle: active (age 0) -> ageing (1..max_age) -> expired
    (age > max_age, removed). Expired tracks are never revived; ids are never
    reused by the same tracker.
    """

    def __init__(self, max_distance_px: float = 40.0, max_age_frames: int = 8):
        """
        Args:
            max_distance_px: Match radius in canonical pixels.
            max_age_frames: Frames a track may go unmatched before removal.
        """
        self.max_distance_px = max_distance_px
        self.max_age_frames = max_age_frames
        self._max_dist_sq = max_distance_px * max_distance_px

        self._tracks: List[Track] = []
        self.next_track_id = 1

        logging.info(
            f"Object tracker initialized (radius={max_distance_px}px, max_age={max_age_frames})"
        )

    def update(self, detections: Iterable[DetectionLike]) -> List[TrackState]:
        """
        Advance all tracks by one frame.

        Args:
            detections: This frame's centroids.

        Returns:
            Snapshots of all live tracks, in creation order.
        """
        points = [_as_point(d) for d in detections]

        for track in self._tracks:
            track.age += 1

        claimed = self._match(points)
        self._add_new_tracks(points, claimed)
        self._remove_expired()

        return [t.snapshot() for t in self._tracks]

    def _match(self, points: Sequence[Tuple[float, float]]) -> List[bool]:
        claimed = [False] * len(points)
        for track in self._tracks:
            best = -1
            best_dist = float("inf")
            for i, (px, py) in enumerate(points):
                if claimed[i]:
                    continue
                dx = px - track.x
                dy = py - track.y
                d2 = dx * dx + dy * dy
                if d2 < best_dist and d2 <= self._max_dist_sq:
                    best_dist = d2
                    best = i

            if best < 0:
                continue

            claimed[best] = True
            px, py = points[best]
            track.vx = px - track.x
            track.vy = py - track.y
            track.has_velocity = abs(track.vx) + abs(track.vy) > VELOCITY_EPSILON
            track.x = px
            track.y = py
            track.age = 0
        return claimed

    def _add_new_tracks(self, points: Sequence[Tuple[float, float]], claimed: Sequence[bool]) -> None:
        for i, (px, py) in enumerate(points):
            if claimed[i]:
                continue
            self._tracks.append(Track(track_id=self.next_track_id, x=px, y=py))
            self.next_track_id += 1

    def _remove_expired(self) -> None:
        self._tracks = [t for t in self._tracks if t.age <= self.max_age_frames]

    def __len__(self) -> int:
        return len(self._tracks)
