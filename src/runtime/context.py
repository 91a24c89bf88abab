from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from models.config import Config
from models.drain_event import DrainEvent, Lane
from runtime.sinks import FanoutSink
from storage.profile_store import ProfileStore
from web.hub import EventHub
from web.services.stats_service import StatsService

if TYPE_CHECKING:
    from pipeline.engine import PipelineEngine


@dataclass
class RuntimeContext:
    """Holds runtime state and service references; avoids global singletons."""

    config: Config
    stats: StatsService = field(default_factory=StatsService)
    hub: EventHub = field(default_factory=EventHub)
    sink: FanoutSink = field(default_factory=FanoutSink)
    profiles: Optional[ProfileStore] = None
    engine: Optional["PipelineEngine"] = None

    def __post_init__(self):
        if self.profiles is None:
            self.profiles = ProfileStore(self.config.profiles.root)
        self.sink.add(self.stats)
        self.sink.add(self.hub)

    def override(self, lane: Lane) -> DrainEvent:
        """Inject a manual drain event, bypassing the detection loop."""
        event = DrainEvent.manual(lane)
        self.sink.publish(event)
        return event
