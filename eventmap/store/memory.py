"""In-process event store for demos and tests."""

from __future__ import annotations

import asyncio
import uuid
from typing import Iterable, List, Optional

from ..errors import LoadFailure
from ..models import Event
from .base import NewEvent


def _start_key(event: Event):
    if event.start_time is None:
        return (1, 0.0)
    return (0, event.start_time.timestamp())


class InMemoryEventStore:
    """
    Event store backed by a list.

    Args:
        events: Initial events
        delay: Seconds to wait before answering a load
        fail_with: When set, loads raise ``LoadFailure`` with this message
    """

    def __init__(self, events: Iterable[Event] = (), *, delay: float = 0.0, fail_with: Optional[str] = None):
        self._events: List[Event] = list(events)
        self.delay = delay
        self.fail_with = fail_with
        self.load_calls = 0

    async def load_all_events(self) -> List[Event]:
        self.load_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with:
            raise LoadFailure(self.fail_with)
        # Stable sort keeps insertion order for equal starts; missing starts go last
        return sorted(self._events, key=_start_key)

    async def create_event(self, fields: NewEvent) -> str:
        event_id = uuid.uuid4().hex
        self._events.append(
            Event(
                id=event_id,
                title=fields.title,
                lat=fields.lat,
                lng=fields.lng,
                start_time=fields.start_time,
                end_time=fields.end_time,
                description=fields.description,
                address=fields.address,
            )
        )
        return event_id
