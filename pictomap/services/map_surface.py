"""
Map surface contract plus a headless Web Mercator implementation.

The headless surface keeps a viewport (center, zoom, pixel size) and a list of
attached markers. It is what the HTTP facade and the tests drive; a UI map
widget would implement the same protocol.
"""
from __future__ import annotations

import math
from typing import Callable, List, Protocol, Tuple

from pictomap.domain.models import BoundingBox, Marker, PixelPoint


TILE_SIZE = 256
MAX_LATITUDE = 85.0511287798

ViewChangedCallback = Callable[[], None]


class MapSurface(Protocol):
    def get_bounds(self) -> BoundingBox: ...

    def project(self, lat: float, lon: float) -> PixelPoint: ...

    def on_view_changed(self, callback: ViewChangedCallback) -> None: ...

    def off_view_changed(self, callback: ViewChangedCallback) -> None: ...

    def attach(self, marker: Marker) -> None: ...

    def detach(self, marker: Marker) -> None: ...


def _latlon_to_world_px(lat: float, lon: float, zoom: float) -> Tuple[float, float]:
    """Convert lat/lon to Web Mercator world pixel coords at `zoom`."""
    lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))
    lat_rad = math.radians(lat)
    size = TILE_SIZE * 2.0 ** zoom
    x = (lon + 180.0) / 360.0 * size
    y = (1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi) / 2.0 * size
    return x, y


def _world_px_to_latlon(x: float, y: float, zoom: float) -> Tuple[float, float]:
    size = TILE_SIZE * 2.0 ** zoom
    lon = x / size * 360.0 - 180.0
    n = math.pi - 2.0 * math.pi * y / size
    lat = math.degrees(math.atan(math.sinh(n)))
    return lat, lon


class HeadlessMapSurface:
    def __init__(
        self,
        center_lat: float = 0.0,
        center_lon: float = 0.0,
        zoom: float = 16,
        width: int = 1024,
        height: int = 768,
    ):
        self.center_lat = center_lat
        self.center_lon = center_lon
        self.zoom = zoom
        self.width = width
        self.height = height
        self._markers: List[Marker] = []
        self._listeners: List[ViewChangedCallback] = []

    @property
    def markers(self) -> List[Marker]:
        """Attached markers in attach order."""
        return list(self._markers)

    def _origin(self) -> Tuple[float, float]:
        cx, cy = _latlon_to_world_px(self.center_lat, self.center_lon, self.zoom)
        return cx - self.width / 2.0, cy - self.height / 2.0

    def project(self, lat: float, lon: float) -> PixelPoint:
        """Pixel position relative to the viewport's top-left corner."""
        x, y = _latlon_to_world_px(lat, lon, self.zoom)
        ox, oy = self._origin()
        return PixelPoint(x - ox, y - oy)

    def get_bounds(self) -> BoundingBox:
        ox, oy = self._origin()
        north, west = _world_px_to_latlon(ox, oy, self.zoom)
        south, east = _world_px_to_latlon(ox + self.width, oy + self.height, self.zoom)
        return BoundingBox(south=south, west=west, north=north, east=east)

    def set_view(self, center_lat: float, center_lon: float, zoom: float | None = None) -> None:
        self.center_lat = center_lat
        self.center_lon = center_lon
        if zoom is not None:
            self.zoom = zoom
        self._view_changed()

    def set_bounds(self, bounds: BoundingBox) -> None:
        """Center on `bounds` at the largest zoom that still shows all of it."""
        x1, y1 = _latlon_to_world_px(bounds.north, bounds.west, 0)
        x2, y2 = _latlon_to_world_px(bounds.south, bounds.east, 0)
        span_x = max(abs(x2 - x1), 1e-9)
        span_y = max(abs(y2 - y1), 1e-9)
        zoom = math.log2(min(self.width / span_x, self.height / span_y))
        center_lat, center_lon = _world_px_to_latlon((x1 + x2) / 2.0, (y1 + y2) / 2.0, 0)
        self.set_view(center_lat, center_lon, zoom)

    def _view_changed(self) -> None:
        for marker in self._markers:
            marker.reproject(self.project(marker.latitude, marker.longitude))
        for callback in list(self._listeners):
            callback()

    def on_view_changed(self, callback: ViewChangedCallback) -> None:
        self._listeners.append(callback)

    def off_view_changed(self, callback: ViewChangedCallback) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def attach(self, marker: Marker) -> None:
        marker.reproject(self.project(marker.latitude, marker.longitude))
        self._markers.append(marker)

    def detach(self, marker: Marker) -> None:
        if marker in self._markers:
            self._markers.remove(marker)
            marker.anchor = None
