"""
Tests for LaneClassifier direction filter and per-lane cooldown.
"""

import pytest

from algorithms.lanes import LaneClassifier, LaneClassifierConfig
from geometry.regions import RegionCatalog
from models.config import LaneConfig
from models.drain_event import DrainSource, Lane
from models.track import TrackState


def falling(track_id=1, x=50.0, y=250.0, vy=3.0, has_velocity=True):
    return TrackState(track_id=track_id, x=x, y=y, vx=0.0, vy=vy, has_velocity=has_velocity)


@pytest.fixture
def classifier(canonical, three_lane_polygons):
    return LaneClassifier(RegionCatalog(canonical, three_lane_polygons))


class TestLaneClassifier:
    def test_emits_event(self, classifier):
        events = classifier.classify([falling()], now=100.0)
        
        assert len(events) == 1
        event = events[0]
        assert event.lane is Lane.LEFT
        assert event.confidence == pytest.approx(0.8)
        assert event.timestamp == 100.0
        assert event.source is DrainSource.AUTO

    def test_cooldown_suppresses_repeat(self, classifier):
        t = 100.0
        cooldown = 0.6
        
        first = classifier.classify([falling()], now=t)
        second = classifier.classify([falling()], now=t + cooldown / 2)
        
        assert len(first) + len(second) == 1

    def test_fires_again_after_cooldown(self, classifier):
        t = 100.0
        cooldown = 0.6
        
        first = classifier.classify([falling()], now=t)
        second = classifier.classify([falling()], now=t + cooldown * 2)
        
        assert len(first) + len(second) == 2

    def test_cooldowns_are_per_lane(self, classifier):
        events = classifier.classify(
            [falling(1, x=50.0), falling(2, x=200.0), falling(3, x=350.0)],
            now=5.0,
        )
        
        assert [e.lane for e in events] == [Lane.LEFT, Lane.CENTER, Lane.RIGHT]

    def test_two_tracks_same_lane_same_frame(self, classifier):
        events = classifier.classify([falling(1, x=40.0), falling(2, x=60.0)], now=5.0)
        assert len(events) == 1

    @pytest.mark.parametrize("track", [
        falling(has_velocity=False),
        falling(vy=1.0),
        falling(vy=0.5),
        falling(vy=-4.0),
    ])
    def test_slow_or_upward_tracks_ignored(self, classifier, track):
        assert classifier.classify([track], now=1.0) == []

    def test_outside_lanes_ignored(self, classifier):
        before = classifier.last_fire
        
        assert classifier.classify([falling(y=50.0)], now=1.0) == []
        assert classifier.last_fire == before

    def test_lane_state_prepopulated(self, classifier):
        assert set(classifier.last_fire) == {Lane.LEFT, Lane.CENTER, Lane.RIGHT}
        assert all(v == float("-inf") for v in classifier.last_fire.values())

    def test_last_fire_updated_on_emit(self, classifier):
        classifier.classify([falling(x=200.0)], now=42.0)
        assert classifier.last_fire[Lane.CENTER] == 42.0
        assert classifier.last_fire[Lane.LEFT] == float("-inf")

    def test_custom_config(self, canonical, three_lane_polygons):
        cfg = LaneClassifierConfig(min_downward_velocity=5.0, cooldown_s=0.0, confidence=0.5)
        classifier = LaneClassifier(RegionCatalog(canonical, three_lane_polygons), cfg)
        
        assert classifier.classify([falling(vy=3.0)], now=1.0) == []
        events = classifier.classify([falling(vy=6.0)], now=1.0)
        events += classifier.classify([falling(vy=6.0)], now=1.0)
        
        assert len(events) == 2
        assert events[0].confidence == 0.5


class TestLaneClassifierConfig:
    def test_from_lane_config_converts_ms(self):
        cfg = LaneClassifierConfig.from_lane_config(
            LaneConfig(min_downward_velocity=2.0, cooldown_ms=750, confidence=0.9)
        )
        
        assert cfg.cooldown_s == pytest.approx(0.75)
        assert cfg.min_downward_velocity == 2.0
        assert cfg.confidence == 0.9
