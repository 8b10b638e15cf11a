"""
View coordinator: keeps the map layer, the list sheet and the selection
consistent with each other.

Derived state comes from the pure :func:`recompute`. :class:`ViewCoordinator`
is the thin adapter around it: it owns the inputs, calls ``recompute`` after
every input change and forwards the outputs to the renderer.

Rebuild policy:
- events or filter change (or the filter window rolls over at midnight):
  filter, rebuild the cluster index, query
- zoom or viewport change alone: query the existing index
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from ..errors import LoadFailure, NotFound, PersistenceFailure
from ..filtering import FilterMode, badge_counts, empty_label, filter_events
from ..filtering.engine import local_midnight
from ..models import Event
from ..selection import PulseConfig, SelectionController
from ..selection.pulse import Scheduler
from ..spatial import BBox, Cluster, ClusterConfig, ClusterIndex, ClusterQueryResult
from ..store.base import EventStore, FilterPersistence
from .render import CameraTarget, PopupDetails, RenderInstruction, Renderer
from .sheet import DEFAULT_TITLE, SheetPosition, SheetState

logger = logging.getLogger(__name__)


@dataclass
class ViewConfig:
    """Initial camera and list settings."""

    center: Tuple[float, float] = (60.4518, 22.2666)
    """Initial map centre as (lat, lng)."""

    zoom: float = 12.0
    """Initial zoom."""

    focus_zoom: float = 14.0
    """Minimum zoom when flying to an event picked from the list."""

    default_title: str = DEFAULT_TITLE
    """Title of the list showing every event under the current filter."""

    @classmethod
    def from_profile(cls, profile: Dict[str, Any]) -> "ViewConfig":
        map_cfg = profile.get("map", {}) or {}
        sheet_cfg = profile.get("sheet", {}) or {}
        defaults = cls()
        center = map_cfg.get("center", defaults.center)
        return cls(
            center=(float(center[0]), float(center[1])),
            zoom=float(map_cfg.get("zoom", defaults.zoom)),
            focus_zoom=float(map_cfg.get("focus_zoom", defaults.focus_zoom)),
            default_title=str(sheet_cfg.get("default_title", defaults.default_title)),
        )


@dataclass(frozen=True)
class ViewInputs:
    events: Tuple[Event, ...]
    filter_mode: FilterMode
    now: datetime
    zoom: float
    viewport: Optional[BBox] = None
    selected_id: Optional[str] = None
    sheet: SheetState = field(default_factory=SheetState)


@dataclass(frozen=True)
class ViewOutputs:
    inputs: ViewInputs
    filtered: Tuple[Event, ...]
    index: ClusterIndex
    result: ClusterQueryResult
    sheet: SheetState
    selection_visible: bool


@dataclass(frozen=True)
class ClusterDrillDown:
    """Outcome of clicking a cluster."""
    cluster: Cluster
    expansion_zoom: int
    events: Tuple[Event, ...]
    camera: CameraTarget


def _same_point_set(previous: ViewInputs, current: ViewInputs) -> bool:
    return (
        previous.filter_mode is current.filter_mode
        and local_midnight(previous.now) == local_midnight(current.now)
        and (previous.events is current.events or previous.events == current.events)
    )


def recompute(
    inputs: ViewInputs,
    config: ClusterConfig,
    previous: Optional[ViewOutputs] = None,
) -> ViewOutputs:
    """
    Derive what to draw and what to list from ``inputs``.

    ``previous`` lets a zoom- or viewport-only change reuse the existing
    index instead of rebuilding it.
    """
    if (
        previous is not None
        and previous.index.config == config
        and _same_point_set(previous.inputs, inputs)
    ):
        filtered = previous.filtered
        index = previous.index
        sheet = inputs.sheet
    else:
        filtered = tuple(filter_events(inputs.filter_mode, inputs.now, inputs.events))
        index = ClusterIndex.build(filtered, config)
        sheet = inputs.sheet.synced(filtered)
        logger.debug(
            f"Rebuilt index for {inputs.filter_mode.value}: "
            f"{len(filtered)}/{len(inputs.events)} events"
        )

    result = index.query(inputs.zoom, inputs.viewport)
    selection_visible = inputs.selected_id is not None and any(
        event.id == inputs.selected_id for event in result.singles
    )
    return ViewOutputs(
        inputs=inputs,
        filtered=filtered,
        index=index,
        result=result,
        sheet=sheet,
        selection_visible=selection_visible,
    )


def _system_now() -> datetime:
    return datetime.now().astimezone()


class ViewCoordinator:
    """
    Owns the event snapshot, filter, camera, sheet and selection for one view.

    Create one per active view and call :meth:`close` when it goes away:
    teardown cancels an in-flight load and stops the pulse timer, and every
    input arriving afterwards is ignored.
    """

    def __init__(
        self,
        renderer: Optional[Renderer] = None,
        *,
        store: Optional[EventStore] = None,
        persistence: Optional[FilterPersistence] = None,
        cluster_config: Optional[ClusterConfig] = None,
        pulse_config: Optional[PulseConfig] = None,
        view_config: Optional[ViewConfig] = None,
        clock: Callable[[], datetime] = _system_now,
        scheduler: Optional[Scheduler] = None,
    ):
        self.renderer = renderer
        self.store = store
        self.persistence = persistence
        self.cluster_config = cluster_config or ClusterConfig()
        self.view_config = view_config or ViewConfig()
        self.clock = clock
        self.selection = SelectionController(pulse_config, on_pulse=self._on_pulse, scheduler=scheduler)

        self._events: Tuple[Event, ...] = ()
        self._filter_mode = FilterMode.ALL
        self._zoom = self.view_config.zoom
        self._viewport: Optional[BBox] = None
        self._sheet = SheetState(title=self.view_config.default_title)
        self._outputs: Optional[ViewOutputs] = None

        self.loading = False
        self.load_error: Optional[str] = None
        self._load_task: Optional[asyncio.Future] = None
        self._generation = 0
        self._closed = False

        self._refresh()

    @classmethod
    def from_profile(cls, profile: Dict[str, Any], renderer: Optional[Renderer] = None, **kwargs) -> "ViewCoordinator":
        """Build with the clustering, pulse and view sections of a map profile."""
        return cls(
            renderer,
            cluster_config=ClusterConfig.from_profile(profile),
            pulse_config=PulseConfig.from_profile(profile),
            view_config=ViewConfig.from_profile(profile),
            **kwargs,
        )

    # -----------------------------
    # Derived state
    # -----------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def events(self) -> Tuple[Event, ...]:
        return self._events

    @property
    def filter_mode(self) -> FilterMode:
        return self._filter_mode

    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def viewport(self) -> Optional[BBox]:
        return self._viewport

    @property
    def sheet(self) -> SheetState:
        return self._sheet

    @property
    def outputs(self) -> ViewOutputs:
        if self._outputs is None:
            raise RuntimeError("View outputs are not available before the first refresh")
        return self._outputs

    @property
    def filtered(self) -> Tuple[Event, ...]:
        return self.outputs.filtered

    @property
    def index(self) -> ClusterIndex:
        return self.outputs.index

    @property
    def result(self) -> ClusterQueryResult:
        return self.outputs.result

    @property
    def selected_id(self) -> Optional[str]:
        return self.selection.selected_id

    @property
    def home_camera(self) -> CameraTarget:
        """Initial camera position from the profile."""
        lat, lng = self.view_config.center
        return CameraTarget(lat=lat, lng=lng, zoom=self.view_config.zoom)

    @property
    def badge_counts(self) -> Dict[FilterMode, int]:
        return badge_counts(self.clock(), self._events)

    @property
    def empty_label(self) -> str:
        return empty_label(self._filter_mode)

    def instruction(self) -> RenderInstruction:
        outputs = self.outputs
        return RenderInstruction(
            result=outputs.result,
            selected_id=self.selection.selected_id,
            selection_visible=outputs.selection_visible,
            pulse_value=self.selection.pulse_value,
            loading=self.loading,
        )

    def _refresh(self) -> None:
        if self._closed:
            return
        inputs = ViewInputs(
            events=self._events,
            filter_mode=self._filter_mode,
            now=self.clock(),
            zoom=self._zoom,
            viewport=self._viewport,
            selected_id=self.selection.selected_id,
            sheet=self._sheet,
        )
        self._outputs = recompute(inputs, self.cluster_config, self._outputs)
        self._sheet = self._outputs.sheet
        self.selection.resolve(e.id for e in self._outputs.result.singles)
        self._emit()

    def _emit(self) -> None:
        if self.renderer is not None and not self._closed:
            self.renderer.render(self.instruction())

    def _on_pulse(self, value: float) -> None:
        self._emit()

    # -----------------------------
    # Inputs
    # -----------------------------

    def set_events(self, events: Iterable[Event]) -> None:
        """Replace the authoritative point set."""
        if self._closed:
            return
        self._events = tuple(events)
        self._refresh()

    def set_filter(self, mode: FilterMode, persist: bool = True) -> None:
        if self._closed:
            return
        self._filter_mode = mode
        if persist:
            self._save_filter(mode)
        self._refresh()

    def set_camera(self, zoom: float, viewport: Optional[BBox] = None) -> None:
        """Zoom or pan; reuses the current index."""
        if self._closed:
            return
        self._zoom = float(zoom)
        self._viewport = viewport
        self._refresh()

    def restore_filter(self) -> FilterMode:
        """Apply the saved filter mode, falling back to ``All``."""
        saved: Optional[FilterMode] = None
        if self.persistence is not None:
            try:
                saved = self.persistence.load_saved_mode()
            except PersistenceFailure as e:
                logger.warning(f"Could not restore filter mode: {e}")
        mode = saved or FilterMode.ALL
        self.set_filter(mode, persist=False)
        return mode

    def _save_filter(self, mode: FilterMode) -> None:
        if self.persistence is None:
            return
        try:
            self.persistence.save_mode(mode)
        except PersistenceFailure as e:
            logger.warning(f"Could not save filter mode {mode.value}: {e}")

    async def load(self, store: Optional[EventStore] = None) -> None:
        """
        One-shot load of the point set from the event store.

        A newer load supersedes an older one. Results arriving after
        :meth:`close` or after a newer load started are discarded. A
        ``LoadFailure`` leaves an empty point set with ``loading`` False.
        """
        store = store or self.store
        if store is None:
            raise ValueError("No event store configured")
        if self._closed:
            return

        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()

        self._generation += 1
        generation = self._generation
        self.loading = True
        self.load_error = None
        self._emit()

        task = asyncio.ensure_future(store.load_all_events())
        self._load_task = task
        try:
            events = await task
        except asyncio.CancelledError:
            if self._is_stale(generation):
                logger.debug("Discarding cancelled event load")
                return
            self._fail_load("load cancelled")
            raise
        except LoadFailure as e:
            if self._is_stale(generation):
                return
            logger.error(f"Event load failed: {e}")
            self._fail_load(str(e))
            return
        finally:
            if self._load_task is task:
                self._load_task = None

        if self._is_stale(generation):
            logger.debug("Discarding stale event load")
            return

        self.loading = False
        logger.info(f"Loaded {len(events)} events")
        self.set_events(events)

    def _is_stale(self, generation: int) -> bool:
        return self._closed or generation != self._generation

    def _fail_load(self, reason: str) -> None:
        self.loading = False
        self.load_error = reason
        self.set_events(())

    def close(self) -> None:
        """Tear down: cancel any in-flight load and release the pulse timer."""
        if self._closed:
            return
        self._closed = True
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
        self._load_task = None
        self.selection.close()
        logger.debug("View coordinator closed")

    # -----------------------------
    # User actions
    # -----------------------------

    def click_cluster(self, cluster_id: int) -> Optional[ClusterDrillDown]:
        """
        Drill into a cluster: list its members and suggest a zoom that splits it.

        Unknown ids (e.g. from before a rebuild) are ignored.
        """
        if self._closed:
            return None
        index = self.index
        try:
            cluster = index.get_cluster(cluster_id)
            expansion = index.expansion_zoom(cluster_id)
            leaves = index.get_leaves(cluster_id, limit=self.cluster_config.leaf_limit, offset=0)
        except NotFound as e:
            logger.warning(f"Ignoring cluster click: {e}")
            return None

        self._sheet = self._sheet.show_cluster(cluster_id, leaves, f"{cluster.point_count} events")
        self._clear_unrelated_selection()
        camera = CameraTarget(lat=cluster.lat, lng=cluster.lng, zoom=expansion)
        if self.renderer is not None:
            self.renderer.move_camera(camera)
        self._refresh()
        return ClusterDrillDown(
            cluster=cluster,
            expansion_zoom=expansion,
            events=tuple(leaves),
            camera=camera,
        )

    def click_point(self, event_id: str) -> Optional[PopupDetails]:
        """Select a drawn point and hand its details to the renderer."""
        if self._closed:
            return None
        event = self._find(event_id, self.result.singles)
        if event is None:
            logger.warning(f"Ignoring click on unknown point {event_id}")
            return None

        self.selection.select(event.id)
        popup = PopupDetails.from_event(event)
        if self.renderer is not None:
            self.renderer.show_popup(popup)
        self._refresh()
        return popup

    def click_list_item(self, event_id: str) -> Optional[CameraTarget]:
        """Select a list row and fly the map to it."""
        if self._closed:
            return None
        event = self._find(event_id, self._sheet.items) or self._find(event_id, self._events)
        if event is None:
            logger.warning(f"Ignoring click on unknown list row {event_id}")
            return None

        self.selection.select(event.id)
        self._sheet = self._sheet.with_position(SheetPosition.FULL)
        camera = CameraTarget(
            lat=event.lat,
            lng=event.lng,
            zoom=max(self._zoom, self.view_config.focus_zoom),
        )
        if self.renderer is not None:
            self.renderer.move_camera(camera)
        self._refresh()
        return camera

    def open_list(self) -> None:
        """Show every event under the current filter."""
        if self._closed:
            return
        self._sheet = self._sheet.show_default(self.filtered, title=self.view_config.default_title)
        self._clear_unrelated_selection()
        self._refresh()

    def close_sheet(self) -> None:
        if self._closed:
            return
        self._sheet = self._sheet.closed()
        self.selection.clear()
        self._refresh()

    def toggle_sheet(self) -> None:
        if self._closed:
            return
        self._sheet = self._sheet.toggled()
        self._refresh()

    def set_sheet_position(self, position: SheetPosition) -> None:
        if self._closed:
            return
        if position is SheetPosition.CLOSED:
            self.close_sheet()
            return
        self._sheet = self._sheet.with_position(position)
        self._refresh()

    def _clear_unrelated_selection(self) -> None:
        selected = self.selection.selected_id
        if selected is not None and not self._sheet.contains(selected):
            self.selection.clear()

    @staticmethod
    def _find(event_id: str, events: Iterable[Event]) -> Optional[Event]:
        return next((e for e in events if e.id == event_id), None)


__all__ = [
    "ClusterDrillDown",
    "ViewConfig",
    "ViewCoordinator",
    "ViewInputs",
    "ViewOutputs",
    "recompute",
]
