"""
Lane classification with per-lane debounce.

Turns tracks into DrainEvents: a track that is moving down fast enough while
sitting inside a lane region fires that lane, unless the lane fired within
its cooldown. Cooldowns are independent, so different lanes may fire in the
same frame.

This classifier does NOT modify tracks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from geometry.regions import RegionCatalog
from models.config import LaneConfig
from models.drain_event import DrainEvent, Lane
from models.track import TrackState


@dataclass
class LaneClassifierConfig:
    """
    Attributes:
        min_downward_velocity: vy must exceed this (px/frame).
        cooldown_s: Minimum seconds between two events on one lane.
        confidence: Confidence attached to emitted events.
    """
    min_downward_velocity: float = 1.0
    cooldown_s: float = 0.6
    confidence: float = 0.8

    @classmethod
    def from_lane_config(cls, cfg: LaneConfig) -> "LaneClassifierConfig":
        return cls(
            min_downward_velocity=float(cfg.min_downward_velocity),
            cooldown_s=float(cfg.cooldown_ms) / 1000.0,
            confidence=float(cfg.confidence),
        )


class LaneClassifier:
    """
    Maps tracks to lanes and enforces the per-lane cooldown.

    Lane state holds one last-fire timestamp per lane of the region catalog,
    and is only written when an event is emitted.
    """

    def __init__(self, regions: RegionCatalog, config: Optional[LaneClassifierConfig] = None):
        self._regions = regions
        self._config = config or LaneClassifierConfig()
        self._last_fire: Dict[Lane, float] = {lane: float("-inf") for lane in regions.lanes}

    @property
    def last_fire(self) -> Dict[Lane, float]:
        """Copy of the per-lane last-fire timestamps."""
        return dict(self._last_fire)

    def classify(self, tracks: Iterable[TrackState], now: float) -> List[DrainEvent]:
        """
        Args:
            tracks: Current frame's tracks.
            now: Current Unix time in seconds; used for cooldown and event timestamp.

        Returns:
            Events emitted this frame, in track order.
        """
        cfg = self._config
        events: List[DrainEvent] = []

        for track in tracks:
            if not track.has_velocity or track.vy <= cfg.min_downward_velocity:
                continue

            lane = self._regions.lane_at(track.x, track.y)
            if lane is None:
                continue

            if now - self._last_fire[lane] < cfg.cooldown_s:
                continue

            self._last_fire[lane] = now
            event = DrainEvent.auto(lane, confidence=cfg.confidence, timestamp=now)
            events.append(event)
            logging.info(
                f"Drain on lane {lane.value}: track={track.track_id} "
                f"pos=({track.x:.1f}, {track.y:.1f}) vy={track.vy:.2f}"
            )

        return events
