"""Bottom-sheet list state; every transition returns a new value."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional, Tuple

from ..models import Event

DEFAULT_TITLE = "Upcoming events"


class SheetPosition(Enum):
    CLOSED = "closed"
    PEEK = "peek"
    FULL = "full"


class SheetKind(Enum):
    """What the sheet is listing."""
    DEFAULT = "default"  # every event under the current filter
    CLUSTER = "cluster"  # members of one cluster, pinned until another list opens


@dataclass(frozen=True)
class SheetState:
    position: SheetPosition = SheetPosition.CLOSED
    title: str = DEFAULT_TITLE
    items: Tuple[Event, ...] = ()
    kind: SheetKind = SheetKind.DEFAULT
    cluster_id: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.position is not SheetPosition.CLOSED

    @property
    def is_pinned(self) -> bool:
        return self.kind is SheetKind.CLUSTER

    def contains(self, event_id: Optional[str]) -> bool:
        return event_id is not None and any(e.id == event_id for e in self.items)

    def show_default(self, items: Iterable[Event], title: str = DEFAULT_TITLE) -> "SheetState":
        return SheetState(
            position=SheetPosition.FULL,
            title=title,
            items=tuple(items),
            kind=SheetKind.DEFAULT,
        )

    def show_cluster(self, cluster_id: int, items: Iterable[Event], title: str) -> "SheetState":
        return SheetState(
            position=SheetPosition.FULL,
            title=title,
            items=tuple(items),
            kind=SheetKind.CLUSTER,
            cluster_id=cluster_id,
        )

    def synced(self, filtered: Iterable[Event]) -> "SheetState":
        """Follow a filter change unless a cluster list is pinned."""
        if self.is_pinned:
            return self
        return replace(self, items=tuple(filtered))

    def with_position(self, position: SheetPosition) -> "SheetState":
        return replace(self, position=position)

    def closed(self) -> "SheetState":
        return replace(self, position=SheetPosition.CLOSED)

    def toggled(self) -> "SheetState":
        """Flip peek and full; a closed sheet stays closed."""
        if self.position is SheetPosition.PEEK:
            return replace(self, position=SheetPosition.FULL)
        if self.position is SheetPosition.FULL:
            return replace(self, position=SheetPosition.PEEK)
        return self
