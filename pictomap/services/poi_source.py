"""
Points of interest for a viewport, fetched from an Overpass API instance.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Protocol, Sequence

from pictomap.domain.errors import NetworkFailure
from pictomap.domain.models import UNKNOWN, BoundingBox, PointOfInterest, PointOfInterestQuery
from pictomap.services.http import get_json
from pictomap.services.naming import nameify
from pictomap.services.retry import RetryPolicy
from pictomap.settings import Settings

logger = logging.getLogger(__name__)

OVERPASS_API_URL = "https://overpass-api.de/api/interpreter"

# Tag keys that carry a POI category, checked after the requested type keys.
CATEGORY_TAG_KEYS = ("amenity", "shop", "leisure", "tourism")


class PointOfInterestSource(Protocol):
    async def fetch(
        self, bounds: BoundingBox, query: Optional[PointOfInterestQuery] = None
    ) -> List[PointOfInterest]: ...


def build_overpass_query(
    bounds: BoundingBox,
    types: Sequence[str],
    element_kinds: Sequence[str],
    limit: int,
    timeout: int,
) -> str:
    """One sub-query per (type, element kind) pair, unioned into one request."""
    bbox = bounds.as_overpass_bbox()
    parts = "".join(f'{kind}["{type_}"]({bbox});' for type_ in types for kind in element_kinds)
    return f"[out:json][timeout:{timeout}];({parts});out center {limit};"


def build_address(tags: dict) -> Optional[str]:
    """'<street> <number>, <postcode> <city>' with empty parts left out."""
    street_line = " ".join(p for p in (tags.get("addr:street"), tags.get("addr:housenumber")) if p)
    city_line = " ".join(p for p in (tags.get("addr:postcode"), tags.get("addr:city")) if p)
    address = ", ".join(p for p in (street_line, city_line) if p)
    return address or None


def _coordinates(element: dict) -> Optional[tuple[float, float]]:
    center = element.get("center") or {}
    lat = element.get("lat", center.get("lat"))
    lon = element.get("lon", center.get("lon"))
    if lat is None or lon is None:
        return None
    try:
        return float(lat), float(lon)
    except (TypeError, ValueError):
        return None


class OverpassPoiSource:
    def __init__(
        self,
        api_url: str = OVERPASS_API_URL,
        default_types: Optional[Iterable[str]] = None,
        element_kinds: Optional[Iterable[str]] = None,
        default_limit: int = 25,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: int = 25,
        derive_names: bool = True,
        filter_out_no_name: bool = True,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.api_url = api_url
        self.default_types = list(default_types) if default_types is not None else ["shop", "leisure"]
        self.element_kinds = list(element_kinds) if element_kinds is not None else ["node"]
        self.default_limit = default_limit
        self.timeout = timeout
        self.derive_names = derive_names
        self.filter_out_no_name = filter_out_no_name
        self.retry_policy = retry_policy or RetryPolicy(max_retries=max_retries, delay=retry_delay)

    @classmethod
    def from_settings(cls, settings: Settings) -> "OverpassPoiSource":
        return cls(
            api_url=settings.OVERPASS_API_URL,
            default_types=settings.POI_DEFAULT_TYPES,
            element_kinds=settings.POI_ELEMENT_KINDS,
            default_limit=settings.POI_DEFAULT_LIMIT,
            max_retries=settings.POI_MAX_RETRIES,
            retry_delay=settings.POI_RETRY_DELAY_SEC,
            timeout=settings.POI_TIMEOUT_SEC,
            derive_names=settings.POI_DERIVE_NAMES,
            filter_out_no_name=settings.POI_FILTER_OUT_NO_NAME,
        )

    async def fetch(
        self, bounds: BoundingBox, query: Optional[PointOfInterestQuery] = None
    ) -> List[PointOfInterest]:
        """
        Return the POIs inside `bounds`.

        An explicit empty `types` list matches nothing and skips the request.
        Failures are logged and degrade to an empty list.
        """
        query = query or PointOfInterestQuery()
        types = query.types
        if types is not None and len(types) == 0:
            return []
        if types is None:
            types = self.default_types
        limit = query.limit if query.limit is not None else self.default_limit

        overpass_query = build_overpass_query(bounds, types, self.element_kinds, limit, self.timeout)
        try:
            data = await self.retry_policy.execute(lambda: self._request(overpass_query))
        except NetworkFailure as exc:
            logger.warning("Overpass fetch failed for bbox=%s: %s", bounds.as_overpass_bbox(), exc)
            return []

        elements = data.get("elements") if isinstance(data, dict) else None
        if not isinstance(elements, list):
            logger.warning("Overpass response without an elements list for bbox=%s", bounds.as_overpass_bbox())
            return []

        results = self.process_elements(elements, types)[:limit]
        logger.debug(
            "OverpassPoiSource.fetch: bbox=%s types=%s got %d POIs",
            bounds.as_overpass_bbox(),
            ",".join(types),
            len(results),
        )
        return results

    async def _request(self, overpass_query: str) -> Any:
        # Client-side timeout slightly above the server-side query timeout.
        return await get_json(self.api_url, params={"data": overpass_query}, timeout=self.timeout + 5)

    def _resolve_type(self, tags: dict, requested_types: Sequence[str]) -> str:
        for key in (*requested_types, *CATEGORY_TAG_KEYS):
            value = tags.get(key)
            if value and value != "yes":
                return str(value)
        return UNKNOWN

    def process_elements(self, elements: Iterable[Any], requested_types: Sequence[str] = ()) -> List[PointOfInterest]:
        results: List[PointOfInterest] = []
        for element in elements:
            if not isinstance(element, dict) or element.get("id") is None:
                continue
            coords = _coordinates(element)
            if coords is None:
                continue
            tags = element.get("tags") or {}
            name = tags.get("name") or UNKNOWN
            poi_type = self._resolve_type(tags, requested_types)
            if self.derive_names and name == UNKNOWN and poi_type != UNKNOWN:
                name = nameify(poi_type)
            if self.filter_out_no_name and name == UNKNOWN:
                continue
            results.append(
                PointOfInterest(
                    id=str(element["id"]),
                    name=name,
                    type=poi_type,
                    latitude=coords[0],
                    longitude=coords[1],
                    address=build_address(tags),
                    metadata=element,
                )
            )
        return results
