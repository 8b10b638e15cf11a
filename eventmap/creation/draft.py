"""
Event creation flow: pick a spot on the map, describe the event, submit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from ..store.base import EventStore, NewEvent

logger = logging.getLogger(__name__)


class ReverseGeocoder(Protocol):
    async def lookup_address(self, lat: float, lng: float) -> Optional[str]:
        ...


@dataclass
class EventDraft:
    """Mutable form state for a new event."""

    title: str = ""
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    address: str = ""
    description: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None

    @property
    def picked(self) -> bool:
        return self.lat is not None and self.lng is not None

    @property
    def is_submittable(self) -> bool:
        return (
            self.picked
            and bool(self.title.strip())
            and self.start_time is not None
            and self.end_time is not None
        )

    async def pick_location(
        self,
        lat: float,
        lng: float,
        geocoder: Optional[ReverseGeocoder] = None,
    ) -> Optional[str]:
        """
        Record the picked location and fill the address from the geocoder.

        The address is only overwritten when the lookup returns something.
        """
        self.lat = lat
        self.lng = lng
        if geocoder is None:
            return None
        address = await geocoder.lookup_address(lat, lng)
        if address:
            self.address = address
        return address

    def to_new_event(self) -> NewEvent:
        """Validated fields; raises ``ValueError`` when the draft is incomplete."""
        if not self.is_submittable:
            raise ValueError("Draft needs a title, start, end and a picked location")
        return NewEvent(
            title=self.title,
            start_time=self.start_time,
            end_time=self.end_time,
            lat=self.lat,
            lng=self.lng,
            address=self.address or None,
            description=self.description or None,
        )

    async def submit(self, store: EventStore) -> str:
        """Create the event; the caller reloads its view afterwards."""
        fields = self.to_new_event()
        event_id = await store.create_event(fields)
        logger.info(f"Submitted event draft as {event_id}")
        return event_id
