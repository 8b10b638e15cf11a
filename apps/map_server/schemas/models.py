"""Pydantic models for the events map HTTP adapter."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from eventmap import Event
from eventmap.filtering import FilterMode
from eventmap.spatial import Cluster
from eventmap.view import CameraTarget, PopupDetails, SheetState


class LatLng(BaseModel):
    """Simple latitude/longitude container."""

    lat: float = Field(..., ge=-90.0, le=90.0, description="Latitude in decimal degrees")
    lng: float = Field(..., ge=-180.0, le=180.0, description="Longitude in decimal degrees")


class EventOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")
    address: Optional[str] = None
    lat: float
    lng: float

    model_config = {"populate_by_name": True}

    @classmethod
    def from_event(cls, event: Event) -> "EventOut":
        return cls(
            id=event.id,
            title=event.title,
            description=event.description,
            start_time=event.start_time,
            end_time=event.end_time,
            address=event.address,
            lat=event.lat,
            lng=event.lng,
        )


class ClusterOut(BaseModel):
    cluster_id: int = Field(..., alias="clusterId")
    lat: float
    lng: float
    point_count: int = Field(..., alias="pointCount")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_cluster(cls, cluster: Cluster) -> "ClusterOut":
        return cls(
            cluster_id=cluster.cluster_id,
            lat=cluster.lat,
            lng=cluster.lng,
            point_count=cluster.point_count,
        )


class CameraOut(BaseModel):
    lat: float
    lng: float
    zoom: float

    @classmethod
    def from_target(cls, target: CameraTarget) -> "CameraOut":
        return cls(lat=target.lat, lng=target.lng, zoom=target.zoom)


class SheetOut(BaseModel):
    position: str
    title: str
    kind: str
    cluster_id: Optional[int] = Field(default=None, alias="clusterId")
    items: List[EventOut] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @classmethod
    def from_state(cls, sheet: SheetState) -> "SheetOut":
        return cls(
            position=sheet.position.value,
            title=sheet.title,
            kind=sheet.kind.value,
            cluster_id=sheet.cluster_id,
            items=[EventOut.from_event(e) for e in sheet.items],
        )


class ViewResponse(BaseModel):
    """Everything a web client needs to draw the map and the list."""

    filter: FilterMode
    zoom: float
    home: CameraOut
    loading: bool
    load_error: Optional[str] = Field(default=None, alias="loadError")
    counts: Dict[str, int]
    empty_label: str = Field(..., alias="emptyLabel")
    clusters: List[ClusterOut]
    singles: List[EventOut]
    selected_id: Optional[str] = Field(default=None, alias="selectedId")
    selection_visible: bool = Field(False, alias="selectionVisible")
    pulse_value: Optional[float] = Field(default=None, alias="pulseValue")
    sheet: SheetOut

    model_config = {"populate_by_name": True}


class FilterRequest(BaseModel):
    mode: FilterMode


class CameraRequest(BaseModel):
    zoom: float = Field(..., ge=0.0, le=24.0)
    bbox: Optional[List[float]] = Field(
        default=None, description="Viewport as [west, south, east, north] in degrees"
    )

    @field_validator("bbox")
    @classmethod
    def _validate_bbox(cls, value: Optional[List[float]]) -> Optional[List[float]]:
        if value is not None and len(value) != 4:
            raise ValueError("bbox must have exactly four values: west, south, east, north")
        return value


class ClusterClickResponse(BaseModel):
    cluster: ClusterOut
    expansion_zoom: int = Field(..., alias="expansionZoom")
    camera: CameraOut
    events: List[EventOut]

    model_config = {"populate_by_name": True}


class PopupOut(BaseModel):
    event_id: str = Field(..., alias="eventId")
    title: str
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    address: Optional[str] = None
    lat: float
    lng: float

    model_config = {"populate_by_name": True}

    @classmethod
    def from_popup(cls, popup: PopupDetails) -> "PopupOut":
        return cls(
            event_id=popup.event_id,
            title=popup.title,
            start_time=popup.start_time,
            address=popup.address,
            lat=popup.lat,
            lng=popup.lng,
        )


class CreateEventRequest(BaseModel):
    title: str
    start_time: datetime = Field(..., alias="startTime")
    end_time: datetime = Field(..., alias="endTime")
    location: LatLng
    address: Optional[str] = None
    description: Optional[str] = None

    model_config = {"populate_by_name": True}


class CreateEventResponse(BaseModel):
    id: str
    address: Optional[str] = None


class GeocodeResponse(BaseModel):
    address: Optional[str] = None
