"""
Contracts and row models for the event store and filter persistence.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, Field, field_validator, model_validator

from ..filtering import FilterMode
from ..models import Event


class EventRecord(BaseModel):
    """One row of the ``events`` table as the store returns it."""

    id: str
    title: str
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    address: Optional[str] = None
    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)

    def to_event(self) -> Event:
        return Event(
            id=self.id,
            title=self.title,
            lat=self.lat,
            lng=self.lng,
            start_time=self.start_time,
            end_time=self.end_time,
            description=self.description,
            address=self.address,
        )


class NewEvent(BaseModel):
    """Fields accepted by ``create_event``."""

    title: str = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime
    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)
    address: Optional[str] = None
    description: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("address", "description")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @model_validator(mode="after")
    def _check_order(self) -> "NewEvent":
        if _as_utc(self.end_time) < _as_utc(self.start_time):
            raise ValueError("end_time must not be before start_time")
        return self

    def to_payload(self) -> Dict[str, Any]:
        """Row payload with instants as ISO-8601 UTC strings."""
        return {
            "title": self.title,
            "description": self.description,
            "address": self.address,
            "start_time": _as_utc(self.start_time).isoformat(),
            "end_time": _as_utc(self.end_time).isoformat(),
            "lat": self.lat,
            "lng": self.lng,
        }


def _as_utc(value: datetime) -> datetime:
    # Naive values are wall-clock local time
    return value.astimezone(timezone.utc)


class EventStore(Protocol):
    """Contract for event stores."""

    async def load_all_events(self) -> List[Event]:
        """All events ordered ascending by start instant.

        Raises:
            LoadFailure: when the store cannot deliver the events
        """
        ...

    async def create_event(self, fields: NewEvent) -> str:
        """Persist a new event and return its identifier.

        Raises:
            CreateFailure: when the store rejects the event
        """
        ...


class FilterPersistence(Protocol):
    """Best-effort key-value storage for the selected filter mode."""

    def load_saved_mode(self) -> Optional[FilterMode]:
        ...

    def save_mode(self, mode: FilterMode) -> None:
        ...
