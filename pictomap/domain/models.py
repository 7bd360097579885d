"""
Core domain models for the pictogram overlay.
These are framework-agnostic and can be used across all services.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


UNKNOWN = "Unknown"  # sentinel for missing POI names/types


class CycleState(str, Enum):
    """Phase of a viewport update cycle."""
    IDLE = "idle"
    FETCHING = "fetching"
    RESOLVING = "resolving"
    SORTING = "sorting"
    RECONCILING = "reconciling"


class HorizontalOrder(str, Enum):
    """Reading direction along the x-axis."""
    LEFT_TO_RIGHT = "lr"
    RIGHT_TO_LEFT = "rl"


class VerticalOrder(str, Enum):
    """Reading direction along the y-axis."""
    TOP_TO_BOTTOM = "tb"
    BOTTOM_TO_TOP = "bt"


@dataclass(frozen=True)
class BoundingBox:
    """Geographic rectangle in decimal degrees."""
    south: float
    west: float
    north: float
    east: float

    def as_overpass_bbox(self) -> str:
        return f"{self.south},{self.west},{self.north},{self.east}"

    def contains(self, lat: float, lon: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lon <= self.east


@dataclass(frozen=True)
class PixelPoint:
    x: float
    y: float


@dataclass(frozen=True)
class PointOfInterest:
    """
    A named, typed, geolocated place such as a restaurant, park or shop.

    The id is assigned by the data source and is only unique within one fetch.
    """
    id: str
    name: str
    type: str
    latitude: float
    longitude: float
    address: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PointOfInterestQuery:
    """
    Filters for a POI fetch.

    - types=None: use the source's default types.
    - types=[]: match nothing (the fetch returns an empty list).
    - limit=None: use the source's default limit.
    """
    types: Optional[List[str]] = None
    limit: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Pictogram:
    id: str
    url: str
    display_text: str  # visible caption
    label: Optional[str] = None  # accessible name
    description: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def accessible_label(self) -> str:
        return self.label or self.display_text


@dataclass
class CacheEntry:
    """Raw resolver payload plus its creation instant (epoch seconds)."""
    timestamp: float
    payload: Any

    def is_valid(self, now: float, expiration: float) -> bool:
        return now - self.timestamp < expiration


@dataclass(eq=False)
class Marker:
    """A POI paired with its pictogram and its current screen anchor."""
    poi: PointOfInterest
    pictogram: Pictogram
    anchor: Optional[PixelPoint] = None

    @property
    def latitude(self) -> float:
        return self.poi.latitude

    @property
    def longitude(self) -> float:
        return self.poi.longitude

    def reproject(self, anchor: PixelPoint) -> None:
        self.anchor = anchor
