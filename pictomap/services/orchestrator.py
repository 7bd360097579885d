"""
Viewport-sync pipeline.

On every (debounced) viewport change the orchestrator fetches POIs for the
visible area, resolves a pictogram per POI, orders the resulting markers and
swaps them onto the map surface.

Cycles are never cancelled once they start. Each cycle gets a sequence number
at dispatch and only a cycle newer than the last applied one may touch the
surface, so a slow early cycle cannot overwrite a later viewport.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
from typing import List, Optional, Sequence, Set

from pictomap.domain.models import CycleState, Marker, Pictogram, PointOfInterest, PointOfInterestQuery
from pictomap.services.debounce import Debouncer
from pictomap.services.map_surface import MapSurface
from pictomap.services.marker_sequencer import MarkerSequencer
from pictomap.services.pictogram_resolver import PictogramResolver
from pictomap.services.poi_source import PointOfInterestSource

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_INTERVAL_SEC = 0.3


class OverlayOrchestrator:
    def __init__(
        self,
        surface: MapSurface,
        poi_source: PointOfInterestSource,
        resolver: PictogramResolver,
        sequencer: MarkerSequencer,
        debounce_interval: float = DEFAULT_DEBOUNCE_INTERVAL_SEC,
        query: Optional[PointOfInterestQuery] = None,
    ):
        self.surface = surface
        self.poi_source = poi_source
        self.resolver = resolver
        self.sequencer = sequencer
        self.query = query
        self.state = CycleState.IDLE
        self.markers: List[Marker] = []
        self._debouncer = Debouncer(self.update, debounce_interval)
        self._sequence = itertools.count(1)
        self._last_applied = 0
        self._started = False
        self._tasks: Set[asyncio.Task] = set()

    @property
    def debounce_interval(self) -> float:
        return self._debouncer.interval

    @property
    def last_applied_cycle(self) -> int:
        return self._last_applied

    def start(self) -> asyncio.Task:
        """Subscribe to view changes and schedule an initial update.

        Must be called from a running event loop.
        """
        if not self._started:
            self.surface.on_view_changed(self.notify_viewport_changed)
            self._started = True
        task = asyncio.ensure_future(self.update())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def stop(self) -> None:
        """Unsubscribe, drop a pending debounce and remove all markers.

        Cycles still in flight complete as stale and attach nothing.
        """
        if self._started:
            self.surface.off_view_changed(self.notify_viewport_changed)
            self._started = False
        self._debouncer.cancel()
        self._last_applied = next(self._sequence)
        for marker in self.markers:
            self.surface.detach(marker)
        self.markers = []

    def notify_viewport_changed(self) -> None:
        self._debouncer()

    async def wait_idle(self) -> None:
        """Wait for the initial update and any debounced cycle already fired."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self._debouncer.drain()

    async def update(self) -> List[Marker]:
        """Run one fetch → resolve → sort → reconcile cycle.

        Returns the markers shown after the cycle.
        """
        cycle = next(self._sequence)
        try:
            await self._run_cycle(cycle)
        finally:
            self.state = CycleState.IDLE
        return list(self.markers)

    async def _run_cycle(self, cycle: int) -> None:
        bounds = self.surface.get_bounds()

        self.state = CycleState.FETCHING
        pois = await self.poi_source.fetch(bounds, self.query)
        if not pois:
            # Fetch failures degrade to an empty list; keep what is shown but
            # still fence off older cycles that are in flight.
            self._last_applied = max(self._last_applied, cycle)
            logger.debug("Cycle %d: no POIs for bbox=%s, keeping current markers", cycle, bounds.as_overpass_bbox())
            return

        self.state = CycleState.RESOLVING
        pictograms = await self._resolve_all(pois)
        markers = [
            Marker(poi=poi, pictogram=pictogram)
            for poi, pictogram in zip(pois, pictograms)
            if pictogram is not None
        ]

        self.state = CycleState.SORTING
        ordered = self.sequencer.order(markers, self.surface.project)

        self.state = CycleState.RECONCILING
        applied = self.reconcile(cycle, ordered)
        logger.debug(
            "Cycle %d: %d POIs, %d markers, %s",
            cycle,
            len(pois),
            len(ordered),
            "applied" if applied else "discarded as stale",
        )

    async def _resolve_all(self, pois: Sequence[PointOfInterest]) -> List[Optional[Pictogram]]:
        results = await asyncio.gather(
            *(self.resolver.resolve(poi) for poi in pois),
            return_exceptions=True,
        )
        pictograms: List[Optional[Pictogram]] = []
        for poi, result in zip(pois, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning("Pictogram lookup failed for POI %s (%s): %s", poi.id, poi.type, result)
                pictograms.append(None)
            else:
                pictograms.append(result)
        return pictograms

    def reconcile(self, cycle: int, ordered: Sequence[Marker]) -> bool:
        """Swap the surface's markers for `ordered` unless `cycle` is stale."""
        if cycle <= self._last_applied:
            return False
        self._last_applied = cycle
        for marker in self.markers:
            self.surface.detach(marker)
        for marker in ordered:
            self.surface.attach(marker)
        self.markers = list(ordered)
        return True
