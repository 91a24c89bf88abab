"""
Event sinks: downstream consumers of DrainEvents.

The processing loop hands each event to its sink synchronously and in
emission order. Sinks must return quickly; anything slow (network sends)
is handed off by the sink itself.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Protocol, runtime_checkable

from models.drain_event import DrainEvent


@runtime_checkable
class EventSink(Protocol):
    """Anything that accepts drain events."""

    def publish(self, event: DrainEvent) -> None:
        ...


class FanoutSink:
    """
    Dispatches each event to several sinks, in order.

    A failing sink is logged and skipped; it never stops delivery to the
    others or the caller.
    """

    def __init__(self, sinks: Iterable[EventSink] = ()):
        self._sinks: List[EventSink] = list(sinks)

    def add(self, sink: EventSink) -> None:
        self._sinks.append(sink)

    def publish(self, event: DrainEvent) -> None:
        for sink in self._sinks:
            try:
                sink.publish(event)
            except Exception as e:
                logging.warning(f"Event sink {type(sink).__name__} failed: {e}")
