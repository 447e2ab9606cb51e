"""
State Change Events
===================

A small synchronous publish/subscribe bus. Stores publish on every mutation so
a presentation layer can re-render without polling.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List

logger = logging.getLogger(__name__)


# Topics published by the core
SCENES = "scenes"
TIMELINE = "timeline"
JOBS = "jobs"


@dataclass(frozen=True)
class StateChange:
    """A single notification delivered to subscribers."""

    topic: str
    action: str
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)


Listener = Callable[[StateChange], None]


class EventBus:
    """
    Delivers state changes to subscribed listeners in subscription order.

    Listener failures are logged and never propagate to the publisher.
    Inside ``batch()`` events are held back and delivered together when the
    outermost batch exits, so listeners only see fully applied changes.
    """

    def __init__(self):
        self._listeners: List[Listener] = []
        self._held: List[StateChange] = []
        self._depth = 0

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, topic: str, action: str, **payload: Any) -> StateChange:
        """Build a StateChange and hand it to every listener."""
        event = StateChange(topic=topic, action=action, payload=payload)
        if self._depth:
            self._held.append(event)
        else:
            self._deliver(event)
        return event

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Hold events published in this block until the outermost batch exits."""
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1
            if not self._depth:
                held, self._held = self._held, []
                for event in held:
                    self._deliver(event)

    def _deliver(self, event: StateChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Listener {listener!r} failed on {event.topic}/{event.action}: {e}")

    def __len__(self) -> int:
        return len(self._listeners)
