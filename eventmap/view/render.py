"""
Render contract between the coordinator and whatever draws the map.

The coordinator never touches drawing primitives. It hands the renderer
value objects: the visible units, the highlight, the pulse phase, popups and
camera moves.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from ..models import Event
from ..spatial import ClusterQueryResult


@dataclass(frozen=True)
class CameraTarget:
    """Where the renderer should move the map."""
    lat: float
    lng: float
    zoom: float


@dataclass(frozen=True)
class PopupDetails:
    """Transient data shown for a clicked point; not retained by the core."""
    event_id: str
    title: str
    start_time: Optional[datetime]
    address: Optional[str]
    lat: float
    lng: float

    @classmethod
    def from_event(cls, event: Event) -> "PopupDetails":
        return cls(
            event_id=event.id,
            title=event.title or "Event",
            start_time=event.start_time,
            address=event.address,
            lat=event.lat,
            lng=event.lng,
        )


@dataclass(frozen=True)
class RenderInstruction:
    result: ClusterQueryResult
    selected_id: Optional[str] = None
    selection_visible: bool = False
    pulse_value: Optional[float] = None
    loading: bool = False


class Renderer(Protocol):
    """Contract for map renderers."""

    def render(self, instruction: RenderInstruction) -> None:
        ...

    def show_popup(self, popup: PopupDetails) -> None:
        ...

    def move_camera(self, target: CameraTarget) -> None:
        ...


@dataclass
class SnapshotRenderer:
    """
    Keeps the latest of each request so a remote client can poll it.

    Only the most recent instruction, popup and camera target are held; the
    counters record how many arrived.
    """

    last: Optional[RenderInstruction] = None
    last_popup: Optional[PopupDetails] = None
    last_camera: Optional[CameraTarget] = None
    render_count: int = 0
    popup_count: int = 0
    camera_move_count: int = 0

    def render(self, instruction: RenderInstruction) -> None:
        self.last = instruction
        self.render_count += 1

    def show_popup(self, popup: PopupDetails) -> None:
        self.last_popup = popup
        self.popup_count += 1

    def move_camera(self, target: CameraTarget) -> None:
        self.last_camera = target
        self.camera_move_count += 1
