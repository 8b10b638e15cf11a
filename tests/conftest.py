"""
Pytest configuration and shared fixtures for eventmap tests.

This file provides:
- Sample events around Turku and elsewhere in Finland
- A fixed reference instant (Wednesday 2024-05-15 10:00, UTC+3)
- A deterministic fake scheduler for pulse timers
- Common test utilities
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional

import numpy as np
import pytest

from eventmap import Event
from eventmap.spatial import ClusterIndex, ClusterQueryResult
from eventmap.view import SnapshotRenderer, ViewCoordinator


# ==============================================================================
# Time
# ==============================================================================

HELSINKI_SUMMER = timezone(timedelta(hours=3))


@pytest.fixture
def tz() -> timezone:
    """Viewer's local timezone for tests."""
    return HELSINKI_SUMMER


@pytest.fixture
def reference_now(tz) -> datetime:
    """Wednesday 2024-05-15 10:00 local."""
    return datetime(2024, 5, 15, 10, 0, 0, tzinfo=tz)


# ==============================================================================
# Sample Events
# ==============================================================================

def make_event(
    event_id: str,
    lat: float,
    lng: float,
    start: Optional[datetime] = None,
    title: Optional[str] = None,
    address: Optional[str] = None,
) -> Event:
    return Event(
        id=event_id,
        title=title or f"Event {event_id}",
        lat=lat,
        lng=lng,
        start_time=start,
        address=address,
    )


@pytest.fixture
def sample_events(tz) -> List[Event]:
    """
    Six events:
    - t1, t2, t3 a few metres apart in Turku (clustered up to max zoom)
    - h1 in Helsinki, n1 in Tampere without a start, p1 in Pori next week
    """
    return [
        make_event("t1", 60.4518, 22.2666, datetime(2024, 5, 15, 18, 0, tzinfo=tz),
                   title="Market Square Concert", address="Kauppatori, Turku"),
        make_event("t2", 60.4519, 22.2667, datetime(2024, 5, 18, 12, 0, tzinfo=tz),
                   title="Riverside Flea Market"),
        make_event("t3", 60.45185, 22.26665, datetime(2024, 5, 15, 20, 0, tzinfo=tz),
                   title="Evening Jazz"),
        make_event("h1", 60.1699, 24.9384, datetime(2024, 5, 19, 14, 0, tzinfo=tz),
                   title="Helsinki Design Walk", address="Esplanadi, Helsinki"),
        make_event("n1", 61.4978, 23.7610, None, title="Tampere Pop-up"),
        make_event("p1", 61.4851, 21.7974, datetime(2024, 5, 22, 19, 0, tzinfo=tz),
                   title="Pori Jazz Preview"),
    ]


@pytest.fixture
def random_events() -> List[Event]:
    """300 pseudo-random events scattered around Turku."""
    rng = np.random.RandomState(42)
    lats = 60.45 + rng.normal(0.0, 0.05, size=300)
    lngs = 22.27 + rng.normal(0.0, 0.10, size=300)
    return [make_event(f"r{i:03d}", float(lat), float(lng)) for i, (lat, lng) in enumerate(zip(lats, lngs))]


# ==============================================================================
# Fake Scheduler
# ==============================================================================

class FakeHandle:
    """Timer handle recorded by :class:`FakeScheduler`."""

    def __init__(self, when: float, callback: Callable[..., Any], args: tuple):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Deterministic stand-in for an event loop's ``call_later``."""

    def __init__(self):
        self.now = 0.0
        self.handles: List[FakeHandle] = []

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeHandle:
        handle = FakeHandle(self.now + delay, callback, args)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for h in self.handles if not h.cancelled and not h.fired)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.handles if not h.cancelled and not h.fired and h.when <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.now = handle.when
            handle.fired = True
            handle.callback(*handle.args)
        self.now = target


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


# ==============================================================================
# Coordinator
# ==============================================================================

@pytest.fixture
def renderer() -> SnapshotRenderer:
    return SnapshotRenderer()


@pytest.fixture
def coordinator(renderer, scheduler, reference_now, sample_events) -> ViewCoordinator:
    """Coordinator at zoom 12 holding the sample events."""
    view = ViewCoordinator(renderer, clock=lambda: reference_now, scheduler=scheduler)
    view.set_events(sample_events)
    yield view
    view.close()


# ==============================================================================
# Utilities
# ==============================================================================

def collect_member_ids(index: ClusterIndex, result: ClusterQueryResult) -> List[str]:
    """Ids of every event represented by ``result``, one entry per appearance."""
    ids = [event.id for event in result.singles]
    for cluster in result.clusters:
        ids.extend(e.id for e in index.get_leaves(cluster.cluster_id, limit=cluster.point_count))
    return ids
