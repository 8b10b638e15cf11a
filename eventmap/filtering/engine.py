"""
Time-window predicates deciding which events are "in view".

Every helper in this module is derived from :func:`matches`, so badge counts,
filtered lists and the map's point set can never disagree with each other.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from ..models import Event


class FilterMode(Enum):
    """Event visibility filters offered to the user."""
    ALL = "all"
    TODAY = "today"
    WEEKEND = "weekend"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["FilterMode"]:
        """Return the mode for a persisted value, or None when unrecognised."""
        if value is None:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


EMPTY_LABELS: Dict[FilterMode, str] = {
    FilterMode.ALL: "No events yet",
    FilterMode.TODAY: "No events today",
    FilterMode.WEEKEND: "No events this weekend",
}

SATURDAY = 5
WEEKEND_END_OFFSET = timedelta(days=2) - timedelta(milliseconds=1)


def _as_local(instant: datetime, now: datetime) -> datetime:
    """Express ``instant`` in the same clock as ``now``."""
    if now.tzinfo is None:
        if instant.tzinfo is None:
            return instant
        # Naive ``now`` is system local time
        return instant.astimezone().replace(tzinfo=None)
    if instant.tzinfo is None:
        return instant.replace(tzinfo=now.tzinfo)
    return instant.astimezone(now.tzinfo)


def local_midnight(now: datetime) -> datetime:
    """Start of ``now``'s calendar day, keeping its timezone."""
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def today_window(now: datetime) -> Tuple[datetime, datetime]:
    """Half-open window ``[midnight, midnight + 24h)`` of ``now``'s day."""
    start = local_midnight(now)
    return start, start + timedelta(days=1)


def weekend_window(now: datetime) -> Tuple[datetime, datetime]:
    """
    Inclusive window from Saturday 00:00 to Sunday 23:59:59.999.

    On a Saturday or Sunday the window is the current weekend, otherwise the
    upcoming one.
    """
    midnight = local_midnight(now)
    weekday = midnight.weekday()
    if weekday >= SATURDAY:
        saturday = midnight - timedelta(days=weekday - SATURDAY)
    else:
        saturday = midnight + timedelta(days=SATURDAY - weekday)
    return saturday, saturday + WEEKEND_END_OFFSET


def matches(mode: FilterMode, now: datetime, event: Event) -> bool:
    """
    Decide whether ``event`` is visible under ``mode`` at instant ``now``.

    Total over its inputs: an event without a start instant matches only
    ``FilterMode.ALL``.
    """
    if mode is FilterMode.ALL:
        return True
    if event.start_time is None:
        return False

    start = _as_local(event.start_time, now)
    if mode is FilterMode.TODAY:
        lower, upper = today_window(now)
        return lower <= start < upper
    if mode is FilterMode.WEEKEND:
        lower, upper = weekend_window(now)
        return lower <= start <= upper
    return False


def filter_events(mode: FilterMode, now: datetime, events: Iterable[Event]) -> List[Event]:
    """Events matching ``mode``, in input order."""
    return [event for event in events if matches(mode, now, event)]


def count(mode: FilterMode, now: datetime, events: Iterable[Event]) -> int:
    """Number of events matching ``mode``."""
    return sum(1 for event in events if matches(mode, now, event))


def badge_counts(now: datetime, events: Iterable[Event]) -> Dict[FilterMode, int]:
    """Counts for every filter chip."""
    events = list(events)
    return {mode: count(mode, now, events) for mode in FilterMode}


def empty_label(mode: FilterMode) -> str:
    return EMPTY_LABELS[mode]
