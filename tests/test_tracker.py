"""
Tests for ObjectTracker centroid matching, velocity and expiry.
"""

import dataclasses

import pytest

from models.detection import Detection
from tracking.tracker import ObjectTracker


class TestObjectTracker:
    def test_new_detection_creates_track(self):
        tracker = ObjectTracker()
        
        tracks = tracker.update([(10, 10)])
        
        assert len(tracks) == 1
        assert tracks[0].track_id == 1
        assert tracks[0].has_velocity is False
        assert (tracks[0].vx, tracks[0].vy) == (0.0, 0.0)
        assert tracks[0].age == 0

    def test_id_persists_and_velocity_set(self):
        tracker = ObjectTracker(max_distance_px=2.0)
        
        first = tracker.update([(10, 10)])
        second = tracker.update([(11, 11)])
        
        assert len(second) == 1
        assert second[0].track_id == first[0].track_id
        assert second[0].has_velocity is True
        assert second[0].vx == pytest.approx(1.0)
        assert second[0].vy == pytest.approx(1.0)
        assert (second[0].x, second[0].y) == (11, 11)

    def test_accepts_detection_objects(self):
        tracker = ObjectTracker()
        tracker.update([Detection(x=5.0, y=5.0)])
        tracks = tracker.update([Detection(x=5.0, y=8.0)])
        
        assert tracks[0].vy == pytest.approx(3.0)

    def test_tiny_movement_has_no_velocity(self):
        tracker = ObjectTracker()
        tracker.update([(10, 10)])
        tracks = tracker.update([(10.004, 10.004)])
        
        assert tracks[0].has_velocity is False

    def test_beyond_radius_creates_new_track(self):
        tracker = ObjectTracker(max_distance_px=40.0)
        tracker.update([(0, 0)])
        tracks = tracker.update([(41, 0)])
        
        assert [t.track_id for t in tracks] == [1, 2]
        assert tracks[0].age == 1

    def test_match_radius_inclusive(self):
        tracker = ObjectTracker(max_distance_px=40.0)
        tracker.update([(0, 0)])
        tracks = tracker.update([(40, 0)])
        
        assert [t.track_id for t in tracks] == [1]

    def test_removed_after_max_age_plus_one_misses(self):
        tracker = ObjectTracker(max_age_frames=8)
        tracker.update([(10, 10)])
        
        for _ in range(8):
            tracks = tracker.update([])
        assert len(tracks) == 1
        assert tracks[0].age == 8
        
        assert tracker.update([]) == []
        assert len(tracker) == 0

    def test_ids_never_reused(self):
        tracker = ObjectTracker(max_age_frames=0)
        tracker.update([(10, 10)])
        tracker.update([])
        tracks = tracker.update([(10, 10)])
        
        assert tracks[0].track_id == 2

    def test_older_track_wins_contested_detection(self):
        """Greedy matching: tracks claim detections in creation order."""
        tracker = ObjectTracker()
        tracker.update([(0, 0), (10, 0)])
        
        tracks = tracker.update([(6, 0)])
        by_id = {t.track_id: t for t in tracks}
        
        assert by_id[1].age == 0
        assert by_id[1].x == 6
        assert by_id[2].age == 1

    def test_nearest_detection_chosen(self):
        tracker = ObjectTracker()
        tracker.update([(100, 100)])
        
        tracks = tracker.update([(120, 100), (103, 100), (100, 130)])
        
        assert tracks[0].track_id == 1
        assert tracks[0].x == 103
        assert len(tracks) == 3

    def test_snapshots_are_frozen(self):
        tracker = ObjectTracker()
        tracks = tracker.update([(1, 1)])
        
        with pytest.raises(dataclasses.FrozenInstanceError):
            tracks[0].x = 5

    def test_unmatched_tracks_age(self):
        tracker = ObjectTracker()
        tracker.update([(0, 0), (200, 200)])
        tracks = tracker.update([Detection(1, 1)])

        assert [(t.track_id, t.age) for t in tracks] == [(1, 0), (2, 1)]
        assert len(tracker) == 2
