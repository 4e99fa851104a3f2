import math
from typing import Optional, Sequence

import numpy as np

from ..models.route_segments import (
    ClosestPoint,
    Coordinate,
    EndpointGap,
    IntersectionPoint,
    SegmentProjection,
)

EARTH_RADIUS_M = 6371000.0


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Calculate haversine distance between two points in meters"""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlat = lat2 - lat1
    dlon = math.radians(b.lng - a.lng)
    hav = (math.sin(dlat / 2) ** 2 +
           math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(hav), math.sqrt(1 - hav))
    return EARTH_RADIUS_M * c


def vectorized_haversine(lat1, lon1, lat2, lon2):
    """Vectorized haversine distance calculation using numpy (meters)"""
    lat1, lon1, lat2, lon2 = map(np.radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def path_length_meters(path: Sequence[Coordinate]) -> float:
    """Sum of consecutive great-circle distances along a path"""
    if len(path) < 2:
        return 0.0
    lats = np.array([p.lat for p in path], dtype=float)
    lngs = np.array([p.lng for p in path], dtype=float)
    return float(np.sum(vectorized_haversine(lats[:-1], lngs[:-1], lats[1:], lngs[1:])))


def closest_point_on_segment(p: Coordinate, a: Coordinate, b: Coordinate) -> SegmentProjection:
    """
    Project ``p`` onto segment ``a``-``b``.

    Longitude/latitude are treated as planar x/y. That small-angle
    approximation is fine at city scale. The parameter is clamped to [0, 1].
    """
    ax, ay = a.lng, a.lat
    dx = b.lng - ax
    dy = b.lat - ay
    len2 = dx * dx + dy * dy
    if len2 == 0:
        return SegmentProjection(point=a, t=0.0)

    t = ((p.lng - ax) * dx + (p.lat - ay) * dy) / len2
    t = min(1.0, max(0.0, t))
    if t == 0.0:
        return SegmentProjection(point=a, t=0.0)
    if t == 1.0:
        return SegmentProjection(point=b, t=1.0)
    return SegmentProjection(point=Coordinate(ay + dy * t, ax + dx * t), t=t)


def closest_point_on_route(p: Coordinate, polyline: Sequence[Coordinate]) -> ClosestPoint:
    """
    Globally closest projection of ``p`` onto ``polyline``.

    ``segment_index`` is the index of the first vertex of the winning segment;
    ties keep the lowest index. A single-point polyline yields that point at
    index 0.
    """
    if len(polyline) == 1:
        only = polyline[0]
        return ClosestPoint(point=only, distance=distance_meters(p, only), segment_index=0)

    best: Optional[ClosestPoint] = None
    for i in range(len(polyline) - 1):
        proj = closest_point_on_segment(p, polyline[i], polyline[i + 1])
        d = distance_meters(p, proj.point)
        if best is None or d < best.distance:
            best = ClosestPoint(point=proj.point, distance=d, segment_index=i)
    return best


# Meters per degree of latitude on the haversine sphere
METERS_PER_DEGREE = EARTH_RADIUS_M * math.pi / 180.0

# Segment rows of the first polyline handled per numpy batch
BATCH_ROWS = 256


def _segment_arrays(polyline: Sequence[Coordinate]):
    """(start_lat, start_lng, end_lat, end_lng) arrays; a lone point is a zero-length segment"""
    lats = np.array([p.lat for p in polyline], dtype=float)
    lngs = np.array([p.lng for p in polyline], dtype=float)
    if len(lats) == 1:
        return lats, lngs, lats, lngs
    return lats[:-1], lngs[:-1], lats[1:], lngs[1:]


def _within_reach(first, second, threshold_meters: float) -> bool:
    """False when the bounding boxes, padded by the threshold, cannot meet"""
    lat_pad = threshold_meters / METERS_PER_DEGREE * 1.01
    lats1 = np.concatenate((first[0], first[2]))
    lngs1 = np.concatenate((first[1], first[3]))
    lats2 = np.concatenate((second[0], second[2]))
    lngs2 = np.concatenate((second[1], second[3]))

    max_abs_lat = min(max(np.max(np.abs(lats1)), np.max(np.abs(lats2))) + lat_pad, 90.0)
    lng_pad = lat_pad / max(math.cos(math.radians(max_abs_lat)), 1e-9)

    if lats1.min() - lat_pad > lats2.max() or lats2.min() - lat_pad > lats1.max():
        return False
    if lngs1.min() - lng_pad > lngs2.max() or lngs2.min() - lng_pad > lngs1.max():
        return False
    return True


def _project(p_lat, p_lng, a_lat, a_lng, b_lat, b_lng):
    """Array form of ``closest_point_on_segment``: same clamping and endpoint snapping"""
    dx = b_lng - a_lng
    dy = b_lat - a_lat
    len2 = dx * dx + dy * dy
    degenerate = len2 == 0
    with np.errstate(divide='ignore', invalid='ignore'):
        t = ((p_lng - a_lng) * dx + (p_lat - a_lat) * dy) / np.where(degenerate, 1.0, len2)
    t = np.where(degenerate, 0.0, np.clip(t, 0.0, 1.0))
    lat = np.where(t == 1.0, b_lat, a_lat + dy * t)
    lng = np.where(t == 1.0, b_lng, a_lng + dx * t)
    return lat, lng


def _scan_pairs(p1: Sequence[Coordinate], p2: Sequence[Coordinate], threshold_meters: float):
    """
    Yield ``(row_offset, distances, lats, lngs)`` blocks of shape (rows, m, 4).

    Axis 0 is the segment of ``p1``, axis 1 the segment of ``p2``, axis 2 the
    candidate: ``p1`` segment start / end projected onto the ``p2`` segment,
    then ``p2`` segment start / end projected onto the ``p1`` segment. Points
    are the projections. Yields nothing when the polylines are out of reach.
    """
    if not p1 or not p2:
        return
    first = _segment_arrays(p1)
    second = _segment_arrays(p2)
    if not _within_reach(first, second, threshold_meters):
        return

    b1_lat, b1_lng, b2_lat, b2_lng = second
    for offset in range(0, len(first[0]), BATCH_ROWS):
        rows = slice(offset, offset + BATCH_ROWS)
        a1_lat, a1_lng, a2_lat, a2_lng = (arr[rows, None] for arr in first)

        distances, lats, lngs = [], [], []
        for p_lat, p_lng, seg in (
            (a1_lat, a1_lng, (b1_lat, b1_lng, b2_lat, b2_lng)),
            (a2_lat, a2_lng, (b1_lat, b1_lng, b2_lat, b2_lng)),
            (b1_lat, b1_lng, (a1_lat, a1_lng, a2_lat, a2_lng)),
            (b2_lat, b2_lng, (a1_lat, a1_lng, a2_lat, a2_lng)),
        ):
            q_lat, q_lng = _project(p_lat, p_lng, *seg)
            p_lat, p_lng, q_lat, q_lng = np.broadcast_arrays(p_lat, p_lng, q_lat, q_lng)
            distances.append(vectorized_haversine(p_lat, p_lng, q_lat, q_lng))
            lats.append(q_lat)
            lngs.append(q_lng)
        yield offset, np.stack(distances, axis=-1), np.stack(lats, axis=-1), np.stack(lngs, axis=-1)


def routes_intersect(p1: Sequence[Coordinate], p2: Sequence[Coordinate],
                     threshold_meters: float) -> bool:
    """True when some vertex of either polyline is within threshold of the other"""
    for _, distances, _, _ in _scan_pairs(p1, p2, threshold_meters):
        if np.any(distances <= threshold_meters):
            return True
    return False


def find_intersection_point(p1: Sequence[Coordinate], p2: Sequence[Coordinate],
                            threshold_meters: float) -> Optional[IntersectionPoint]:
    """
    Closest qualifying projection over all segment pairs, or None.

    Unlike ``routes_intersect`` this keeps scanning and returns the global
    minimum, with the segment index on each polyline where it occurs. Ties
    keep the earliest pair in (first segment, second segment, candidate) order.
    """
    best: Optional[IntersectionPoint] = None
    for offset, distances, lats, lngs in _scan_pairs(p1, p2, threshold_meters):
        masked = np.where(distances <= threshold_meters, distances, np.inf)
        flat = int(np.argmin(masked))
        d = float(masked.flat[flat])
        if not math.isfinite(d):
            continue
        if best is None or d < best.distance:
            i, j, k = np.unravel_index(flat, masked.shape)
            best = IntersectionPoint(
                point=Coordinate(float(lats[i, j, k]), float(lngs[i, j, k])),
                distance=d,
                index_on_first=offset + int(i),
                index_on_second=int(j),
            )
    return best


def closest_endpoints(p1: Sequence[Coordinate], p2: Sequence[Coordinate]) -> EndpointGap:
    """Closest of the four endpoint pairs (start-start, start-end, end-start, end-end)"""
    best: Optional[EndpointGap] = None
    for first_at_tail, a in ((False, p1[0]), (True, p1[-1])):
        for second_at_tail, b in ((False, p2[0]), (True, p2[-1])):
            d = distance_meters(a, b)
            if best is None or d < best.distance:
                best = EndpointGap(distance=d, first_point=a, second_point=b,
                                   first_at_tail=first_at_tail, second_at_tail=second_at_tail)
    return best


def calculate_route_gap(p1: Sequence[Coordinate], p2: Sequence[Coordinate]) -> float:
    """Minimum endpoint-to-endpoint distance, a cheap 'how far apart' proxy"""
    return closest_endpoints(p1, p2).distance
