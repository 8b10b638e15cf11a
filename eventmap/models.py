"""Event record shared by every layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Event:
    """
    A geo-located event as returned by the event store.

    Attributes:
        id: Stable unique identifier
        title: Display title
        lat: Latitude in decimal degrees
        lng: Longitude in decimal degrees
        start_time: Start instant (None when the store has no value)
        end_time: Optional end instant
        description: Optional free text
        address: Optional display address
    """
    id: str
    title: str
    lat: float
    lng: float
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    description: Optional[str] = None
    address: Optional[str] = None
