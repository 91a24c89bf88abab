"""
DrainEvent model and the closed set of lanes it can refer to.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
import time
from typing import Any, Dict, Optional


class Lane(str, Enum):
    """Drain lanes on the playfield."""
    LEFT = "L"
    CENTER = "C"
    RIGHT = "R"

    @classmethod
    def parse(cls, value: Any) -> "Lane":
        """Accept a Lane, its code ("L") or its member name ("LEFT")."""
        if isinstance(value, Lane):
            return value
        text = str(value).strip()
        for lane in cls:
            if text == lane.value or text.upper() == lane.name:
                return lane
        raise ValueError(f"Unknown lane: {value!r}")


class DrainSource(str, Enum):
    """Origin of a drain event."""
    AUTO = "auto"
    MANUAL = "manual"


@dataclass(frozen=True)
class DrainEvent:
    """
    An object drained into a lane.

    Attributes:
        lane: Lane the object drained into.
        confidence: Confidence in [0, 1].
        timestamp: Unix timestamp of the event.
        source: "auto" for detection-loop events, "manual" for overrides.
    """
    lane: Lane
    confidence: float
    timestamp: float
    source: DrainSource = DrainSource.AUTO

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    @classmethod
    def auto(cls, lane: Lane, confidence: float, timestamp: Optional[float] = None) -> "DrainEvent":
        return cls(
            lane=lane,
            confidence=confidence,
            timestamp=time.time() if timestamp is None else timestamp,
            source=DrainSource.AUTO,
        )

    @classmethod
    def manual(cls, lane: Lane, timestamp: Optional[float] = None) -> "DrainEvent":
        """Operator-injected event; always full confidence."""
        return cls(
            lane=lane,
            confidence=1.0,
            timestamp=time.time() if timestamp is None else timestamp,
            source=DrainSource.MANUAL,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON shape consumed by the overlay."""
        return {
            "type": "drain",
            "lane": self.lane.value,
            "confidence": self.confidence,
            "ts": datetime.fromtimestamp(self.timestamp, tz=timezone.utc).isoformat(),
            "source": self.source.value,
        }
