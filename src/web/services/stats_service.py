from __future__ import annotations

import threading
from typing import Any, Dict

from models.drain_event import DrainEvent, Lane


class StatsService:
    """
    Per-lane drain counts for the current session.

    Fed by both the detection loop and manual overrides; safe to use from
    the loop thread and the web server thread at once.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: Dict[Lane, int] = {lane: 0 for lane in Lane}

    def publish(self, event: DrainEvent) -> None:
        with self._lock:
            self._counts[event.lane] += 1

    def reset(self) -> None:
        with self._lock:
            for lane in self._counts:
                self._counts[lane] = 0

    def counts(self) -> Dict[Lane, int]:
        with self._lock:
            return dict(self._counts)

    def get_summary(self) -> Dict[str, Any]:
        counts = self.counts()
        total = max(1, sum(counts.values()))
        return {
            "total": total,
            "lanes": {
                lane.value: {
                    "count": count,
                    "pct": round(count * 100.0 / total, 1),
                }
                for lane, count in counts.items()
            },
        }
