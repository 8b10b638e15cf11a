"""FastAPI adapter exposing one events map view to a web renderer."""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from eventmap.creation import EventDraft
from eventmap.errors import CreateFailure
from eventmap.geocoding import MapboxReverseGeocoder
from eventmap.store import InMemoryEventStore, SupabaseEventStore, YamlFilterStore
from eventmap.store.base import EventStore
from eventmap.tools import ConfigLoader, get_config, load_environment
from eventmap.view import SheetPosition, SnapshotRenderer, ViewCoordinator

from .schemas.models import (
    CameraOut,
    CameraRequest,
    ClusterClickResponse,
    ClusterOut,
    CreateEventRequest,
    CreateEventResponse,
    EventOut,
    FilterRequest,
    GeocodeResponse,
    PopupOut,
    SheetOut,
    ViewResponse,
)

logger = logging.getLogger(__name__)


def build_store() -> EventStore:
    """Supabase when configured, otherwise an empty in-memory store."""
    if os.getenv("SUPABASE_URL"):
        return SupabaseEventStore()
    logger.warning("SUPABASE_URL not set; serving an empty in-memory event store")
    return InMemoryEventStore()


def build_geocoder() -> MapboxReverseGeocoder:
    return MapboxReverseGeocoder()


@asynccontextmanager
async def lifespan(app: FastAPI):
    load_environment()
    profile = get_config()
    persistence_cfg = profile.get("persistence", {}) or {}

    renderer = SnapshotRenderer()
    coordinator = ViewCoordinator.from_profile(
        profile,
        renderer,
        store=build_store(),
        persistence=YamlFilterStore(
            ConfigLoader.filter_state_path(profile),
            key=persistence_cfg.get("filter_key", "turku_events_filter"),
        ),
    )
    coordinator.restore_filter()

    app.state.profile = profile
    app.state.renderer = renderer
    app.state.coordinator = coordinator
    app.state.geocoder = build_geocoder()
    app.state.initial_load = asyncio.create_task(coordinator.load())
    try:
        yield
    finally:
        coordinator.close()
        app.state.initial_load.cancel()


app = FastAPI(title="Events Map Server", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _coordinator(request: Request) -> ViewCoordinator:
    return request.app.state.coordinator


def _view_payload(coordinator: ViewCoordinator) -> Dict[str, Any]:
    instruction = coordinator.instruction()
    response = ViewResponse(
        filter=coordinator.filter_mode,
        zoom=coordinator.zoom,
        home=CameraOut.from_target(coordinator.home_camera),
        loading=instruction.loading,
        load_error=coordinator.load_error,
        counts={mode.value: n for mode, n in coordinator.badge_counts.items()},
        empty_label=coordinator.empty_label,
        clusters=[ClusterOut.from_cluster(c) for c in instruction.result.clusters],
        singles=[EventOut.from_event(e) for e in instruction.result.singles],
        selected_id=instruction.selected_id,
        selection_visible=instruction.selection_visible,
        pulse_value=instruction.pulse_value,
        sheet=SheetOut.from_state(coordinator.sheet),
    )
    return response.model_dump(by_alias=True, mode="json")


@app.get("/health")
async def health_check() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/view")
async def view(request: Request) -> Dict[str, Any]:
    return _view_payload(_coordinator(request))


@app.post("/reload")
async def reload(request: Request) -> Dict[str, Any]:
    coordinator = _coordinator(request)
    await coordinator.load()
    return _view_payload(coordinator)


@app.post("/filter")
async def set_filter(body: FilterRequest, request: Request) -> Dict[str, Any]:
    coordinator = _coordinator(request)
    coordinator.set_filter(body.mode)
    return _view_payload(coordinator)


@app.post("/camera")
async def set_camera(body: CameraRequest, request: Request) -> Dict[str, Any]:
    coordinator = _coordinator(request)
    coordinator.set_camera(body.zoom, tuple(body.bbox) if body.bbox else None)
    return _view_payload(coordinator)


@app.post("/clusters/{cluster_id}/click")
async def click_cluster(cluster_id: int, request: Request) -> Dict[str, Any]:
    drill_down = _coordinator(request).click_cluster(cluster_id)
    if drill_down is None:
        raise HTTPException(status_code=404, detail=f"Unknown or stale cluster id {cluster_id}")
    response = ClusterClickResponse(
        cluster=ClusterOut.from_cluster(drill_down.cluster),
        expansion_zoom=drill_down.expansion_zoom,
        camera=CameraOut.from_target(drill_down.camera),
        events=[EventOut.from_event(e) for e in drill_down.events],
    )
    return response.model_dump(by_alias=True, mode="json")


@app.post("/points/{event_id}/click")
async def click_point(event_id: str, request: Request) -> Dict[str, Any]:
    popup = _coordinator(request).click_point(event_id)
    if popup is None:
        raise HTTPException(status_code=404, detail=f"No visible point {event_id}")
    return PopupOut.from_popup(popup).model_dump(by_alias=True, mode="json")


@app.post("/list/{event_id}/click")
async def click_list_item(event_id: str, request: Request) -> Dict[str, Any]:
    camera = _coordinator(request).click_list_item(event_id)
    if camera is None:
        raise HTTPException(status_code=404, detail=f"No event {event_id}")
    return CameraOut.from_target(camera).model_dump()


@app.post("/sheet/{action}")
async def sheet_action(action: str, request: Request) -> Dict[str, Any]:
    coordinator = _coordinator(request)
    if action == "open":
        coordinator.open_list()
    elif action == "close":
        coordinator.close_sheet()
    elif action == "toggle":
        coordinator.toggle_sheet()
    elif action in (SheetPosition.PEEK.value, SheetPosition.FULL.value):
        coordinator.set_sheet_position(SheetPosition(action))
    else:
        raise HTTPException(status_code=404, detail=f"Unknown sheet action '{action}'")
    return _view_payload(coordinator)


@app.get("/geocode")
async def geocode(lat: float, lng: float, request: Request) -> Dict[str, Any]:
    address = await request.app.state.geocoder.lookup_address(lat, lng)
    return GeocodeResponse(address=address).model_dump()


@app.post("/events")
async def create_event(body: CreateEventRequest, request: Request) -> Dict[str, Any]:
    coordinator = _coordinator(request)
    draft = EventDraft(
        title=body.title,
        start_time=body.start_time,
        end_time=body.end_time,
        address=body.address or "",
        description=body.description or "",
    )
    if body.address:
        draft.lat, draft.lng = body.location.lat, body.location.lng
    else:
        await draft.pick_location(body.location.lat, body.location.lng, request.app.state.geocoder)

    try:
        event_id = await draft.submit(coordinator.store)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except CreateFailure as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    await coordinator.load()
    return CreateEventResponse(id=event_id, address=draft.address or None).model_dump()


__all__ = ["app"]
