"""Event store and filter persistence collaborators."""

from .base import EventRecord, EventStore, FilterPersistence, NewEvent
from .memory import InMemoryEventStore
from .persistence import YamlFilterStore
from .supabase import SupabaseEventStore

__all__ = [
    "EventRecord",
    "EventStore",
    "FilterPersistence",
    "NewEvent",
    "InMemoryEventStore",
    "YamlFilterStore",
    "SupabaseEventStore",
]
