"""
eventmap: zoom-aware clustering and interaction state for a map of events.

Subpackages:
- filtering: time-window predicates (All / Today / Weekend)
- spatial: hierarchical cluster index over Web-Mercator coordinates
- selection: highlighted event and its pulse timer
- view: coordinator keeping map, list sheet and selection consistent
- store, geocoding, creation: external collaborators
"""

from .models import Event
from .errors import (
    EventMapError,
    NotFound,
    ClusterNotFoundError,
    LoadFailure,
    PersistenceFailure,
    CreateFailure,
)

__all__ = [
    "Event",
    "EventMapError",
    "NotFound",
    "ClusterNotFoundError",
    "LoadFailure",
    "PersistenceFailure",
    "CreateFailure",
]
