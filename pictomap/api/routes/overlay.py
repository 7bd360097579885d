"""
Overlay API routes.

Drives the headless map surface and exposes the ordered marker list.
"""
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from pictomap.domain.models import BoundingBox, Marker
from pictomap.services.orchestrator import OverlayOrchestrator

router = APIRouter()


class ViewportRequest(BaseModel):
    south: Optional[float] = None
    west: Optional[float] = None
    north: Optional[float] = None
    east: Optional[float] = None
    center_lat: Optional[float] = None
    center_lon: Optional[float] = None
    zoom: Optional[float] = None


class BoundsResponse(BaseModel):
    south: float
    west: float
    north: float
    east: float


class MarkerResponse(BaseModel):
    tab_index: int
    poi_id: str
    name: str
    type: str
    latitude: float
    longitude: float
    address: Optional[str] = None
    pictogram_id: str
    pictogram_url: str
    display_text: str
    label: str
    description: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None


class OverlayStateResponse(BaseModel):
    state: str
    cycle: int
    bounds: BoundsResponse
    markers: List[MarkerResponse]


def _overlay(request: Request) -> OverlayOrchestrator:
    return request.app.state.overlay


def _marker_response(index: int, marker: Marker) -> MarkerResponse:
    return MarkerResponse(
        tab_index=index,
        poi_id=marker.poi.id,
        name=marker.poi.name,
        type=marker.poi.type,
        latitude=marker.latitude,
        longitude=marker.longitude,
        address=marker.poi.address,
        pictogram_id=marker.pictogram.id,
        pictogram_url=marker.pictogram.url,
        display_text=marker.pictogram.display_text,
        label=marker.pictogram.accessible_label,
        description=marker.pictogram.description,
        x=marker.anchor.x if marker.anchor else None,
        y=marker.anchor.y if marker.anchor else None,
    )


def _state_response(overlay: OverlayOrchestrator) -> OverlayStateResponse:
    bounds = overlay.surface.get_bounds()
    return OverlayStateResponse(
        state=overlay.state.value,
        cycle=overlay.last_applied_cycle,
        bounds=BoundsResponse(south=bounds.south, west=bounds.west, north=bounds.north, east=bounds.east),
        markers=[_marker_response(i, m) for i, m in enumerate(overlay.markers, start=1)],
    )


@router.get("/markers", response_model=OverlayStateResponse)
async def get_markers(request: Request):
    """Markers currently attached, in navigation order."""
    return _state_response(_overlay(request))


@router.post("/viewport", response_model=BoundsResponse)
async def set_viewport(payload: ViewportRequest, request: Request):
    """
    Move the headless map.

    Accepts either a full bounding box or a center (with optional zoom).
    The marker update follows after the debounce interval.
    """
    surface = _overlay(request).surface
    corners = (payload.south, payload.west, payload.north, payload.east)
    if all(v is not None for v in corners):
        if payload.south > payload.north:
            raise HTTPException(status_code=422, detail="south must not exceed north")
        surface.set_bounds(BoundingBox(*corners))
    elif payload.center_lat is not None and payload.center_lon is not None:
        surface.set_view(payload.center_lat, payload.center_lon, payload.zoom)
    else:
        raise HTTPException(
            status_code=422,
            detail="Provide south/west/north/east or center_lat/center_lon",
        )
    bounds = surface.get_bounds()
    return BoundsResponse(south=bounds.south, west=bounds.west, north=bounds.north, east=bounds.east)


@router.post("/refresh", response_model=OverlayStateResponse)
async def refresh(request: Request):
    """Run one update cycle now and return the result."""
    overlay = _overlay(request)
    await overlay.update()
    return _state_response(overlay)
