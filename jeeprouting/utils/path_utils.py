"""
Sub-path extraction along a route polyline.

Projections come from ``closest_point_on_route``: a point plus the index of
the segment it lies on. Segment ``i`` runs from vertex ``i`` to vertex
``i + 1``.
"""

from typing import List, Sequence

from ..models.route_segments import ClosestPoint, Coordinate, Polyline
from .geo_utils import distance_meters

# End projections closer than this to the last emitted point are dropped
DUPLICATE_END_M = 1.0


def _append_end(path: List[Coordinate], end_point: Coordinate) -> None:
    if not path or distance_meters(path[-1], end_point) > DUPLICATE_END_M:
        path.append(end_point)


def trim_between_points(polyline: Sequence[Coordinate], start: ClosestPoint,
                        end: ClosestPoint) -> Polyline:
    """
    Sub-path from the ``start`` projection to the ``end`` projection.

    Direction comes from index order: forward when
    ``start.segment_index <= end.segment_index``, backward otherwise.

    Known limitation: on routes that double back or loop near the query
    points, index order can pick the wrong direction of travel.
    """
    start_idx = start.segment_index
    end_idx = end.segment_index
    path: List[Coordinate] = [start.point]

    if start_idx <= end_idx:
        path.extend(polyline[start_idx + 1:end_idx + 1])
    else:
        path.extend(reversed(polyline[end_idx + 1:start_idx + 1]))

    _append_end(path, end.point)
    return tuple(path)


def trim_to_index(polyline: Sequence[Coordinate], end_index: int, end_point: Coordinate) -> Polyline:
    """Head of the polyline up to ``end_point`` on segment ``end_index``"""
    path: List[Coordinate] = list(polyline[:end_index + 1])
    _append_end(path, end_point)
    return tuple(path)


def trim_from_index(polyline: Sequence[Coordinate], start_index: int, start_point: Coordinate) -> Polyline:
    """Tail of the polyline from ``start_point`` on segment ``start_index``"""
    return (start_point,) + tuple(polyline[start_index + 1:])
