"""
Reading order for markers.

The order does not move anything on the map; it decides the order in which
markers are attached to the surface, which is the order screen readers and
keyboard navigation walk through them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Protocol, Sequence

from pictomap.domain.models import HorizontalOrder, Marker, PixelPoint, VerticalOrder

Projector = Callable[[float, float], PixelPoint]


class MarkerSequencer(Protocol):
    def order(self, markers: Sequence[Marker], projector: Projector) -> List[Marker]: ...


@dataclass
class _Row:
    y: float
    members: List[tuple[Marker, PixelPoint]] = field(default_factory=list)


class GridMarkerSequencer:
    """
    Bucket markers into rows by projected y, then read rows like text.

    A marker joins the first existing row whose y (the y of the row's first
    member) is less than `row_threshold` pixels away, otherwise it opens a new
    row. Assignment is first-fit, so near the threshold the grouping depends on
    input order.
    """

    def __init__(
        self,
        horizontal: HorizontalOrder | str = HorizontalOrder.LEFT_TO_RIGHT,
        vertical: VerticalOrder | str = VerticalOrder.TOP_TO_BOTTOM,
        row_threshold: float = 64,
    ):
        self.horizontal = HorizontalOrder(horizontal)
        self.vertical = VerticalOrder(vertical)
        self.row_threshold = row_threshold

    def group_rows(self, markers: Sequence[Marker], projector: Projector) -> List[_Row]:
        rows: List[_Row] = []
        for marker in markers:
            point = projector(marker.latitude, marker.longitude)
            marker.reproject(point)
            row = next((r for r in rows if abs(r.y - point.y) < self.row_threshold), None)
            if row is None:
                row = _Row(y=point.y)
                rows.append(row)
            row.members.append((marker, point))
        return rows

    def order(self, markers: Sequence[Marker], projector: Projector) -> List[Marker]:
        rows = self.group_rows(markers, projector)
        # sorted() is stable in both directions, so ties keep input order
        rows = sorted(rows, key=lambda r: r.y, reverse=self.vertical == VerticalOrder.BOTTOM_TO_TOP)
        ordered: List[Marker] = []
        for row in rows:
            members = sorted(
                row.members,
                key=lambda m: m[1].x,
                reverse=self.horizontal == HorizontalOrder.RIGHT_TO_LEFT,
            )
            ordered.extend(marker for marker, _ in members)
        return ordered
