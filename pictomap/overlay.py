"""
Wiring for a pictogram overlay on one map surface.

Any strategy can be swapped by passing it in; the rest is built from settings.
"""
from __future__ import annotations

from typing import Optional

from pictomap.domain.models import PointOfInterestQuery
from pictomap.services.map_surface import MapSurface
from pictomap.services.marker_sequencer import GridMarkerSequencer, MarkerSequencer
from pictomap.services.orchestrator import OverlayOrchestrator
from pictomap.services.pictogram_cache import PictogramCache, build_pictogram_cache
from pictomap.services.pictogram_resolver import GlobalSymbolsPictogramResolver, PictogramResolver
from pictomap.services.poi_source import OverpassPoiSource, PointOfInterestSource
from pictomap.settings import Settings, settings as default_settings


def build_overlay(
    surface: MapSurface,
    settings: Optional[Settings] = None,
    poi_source: Optional[PointOfInterestSource] = None,
    resolver: Optional[PictogramResolver] = None,
    sequencer: Optional[MarkerSequencer] = None,
    cache: Optional[PictogramCache] = None,
    query: Optional[PointOfInterestQuery] = None,
) -> OverlayOrchestrator:
    cfg = settings or default_settings
    if poi_source is None:
        poi_source = OverpassPoiSource.from_settings(cfg)
    if resolver is None:
        resolver = GlobalSymbolsPictogramResolver.from_settings(
            cfg, cache=cache if cache is not None else build_pictogram_cache(cfg)
        )
    if sequencer is None:
        sequencer = GridMarkerSequencer(
            horizontal=cfg.GRID_HORIZONTAL_ORDER,
            vertical=cfg.GRID_VERTICAL_ORDER,
            row_threshold=cfg.GRID_ROW_THRESHOLD_PX,
        )
    return OverlayOrchestrator(
        surface=surface,
        poi_source=poi_source,
        resolver=resolver,
        sequencer=sequencer,
        debounce_interval=cfg.DEBOUNCE_INTERVAL_MS / 1000.0,
        query=query,
    )
