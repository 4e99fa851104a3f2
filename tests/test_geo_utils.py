import numpy as np
import pytest

from conftest import coords
from jeeprouting.models.route_segments import Coordinate
from jeeprouting.utils.geo_utils import (
    calculate_route_gap,
    closest_endpoints,
    closest_point_on_route,
    closest_point_on_segment,
    distance_meters,
    find_intersection_point,
    path_length_meters,
    routes_intersect,
    vectorized_haversine,
)

# Handy coordinate aliases (lat, lng)
ROXAS = Coordinate(7.0731, 125.6128)
BANGKAL = Coordinate(7.0590, 125.5720)
TORIL = Coordinate(7.0160, 125.4960)

PAIRS = [
    (ROXAS, BANGKAL),
    (BANGKAL, TORIL),
    (Coordinate(0.0, 0.0), Coordinate(0.0, 1.0)),
    (Coordinate(-33.9, 151.2), Coordinate(51.5, -0.12)),
]


@pytest.mark.parametrize("a,b", PAIRS)
def test_distance_is_symmetric(a, b):
    assert distance_meters(a, b) == pytest.approx(distance_meters(b, a))


@pytest.mark.parametrize("point", [ROXAS, BANGKAL, Coordinate(0.0, 0.0)])
def test_distance_to_self_is_zero(point):
    assert distance_meters(point, point) == 0


def test_one_degree_of_longitude_at_equator():
    assert distance_meters(Coordinate(0.0, 0.0), Coordinate(0.0, 1.0)) == pytest.approx(111195, rel=1e-3)


def test_vectorized_haversine_matches_scalar():
    lat1 = np.array([ROXAS.lat, BANGKAL.lat])
    lng1 = np.array([ROXAS.lng, BANGKAL.lng])
    lat2 = np.array([BANGKAL.lat, TORIL.lat])
    lng2 = np.array([BANGKAL.lng, TORIL.lng])
    out = vectorized_haversine(lat1, lng1, lat2, lng2)
    assert out[0] == pytest.approx(distance_meters(ROXAS, BANGKAL))
    assert out[1] == pytest.approx(distance_meters(BANGKAL, TORIL))


def test_path_length():
    assert path_length_meters([]) == 0.0
    assert path_length_meters([ROXAS]) == 0.0
    expected = distance_meters(ROXAS, BANGKAL) + distance_meters(BANGKAL, TORIL)
    assert path_length_meters([ROXAS, BANGKAL, TORIL]) == pytest.approx(expected)


def test_projection_endpoints():
    a, b = Coordinate(7.0, 125.0), Coordinate(7.0, 125.1)
    at_a = closest_point_on_segment(a, a, b)
    at_b = closest_point_on_segment(b, a, b)
    assert (at_a.point, at_a.t) == (a, 0.0)
    assert (at_b.point, at_b.t) == (b, 1.0)


@pytest.mark.parametrize("lng,expected_t", [(124.9, 0.0), (125.05, 0.5), (125.3, 1.0)])
def test_projection_parameter_is_clamped(lng, expected_t):
    a, b = Coordinate(7.0, 125.0), Coordinate(7.0, 125.1)
    proj = closest_point_on_segment(Coordinate(7.01, lng), a, b)
    assert 0.0 <= proj.t <= 1.0
    assert proj.t == pytest.approx(expected_t)


def test_degenerate_segment():
    a = Coordinate(7.0, 125.0)
    proj = closest_point_on_segment(Coordinate(7.1, 125.1), a, a)
    assert (proj.point, proj.t) == (a, 0.0)


def test_closest_point_on_route():
    line = coords((7.0, 125.0), (7.0, 125.1), (7.1, 125.1))
    hit = closest_point_on_route(Coordinate(7.05, 125.11), line)
    assert hit.segment_index == 1
    assert hit.point.lng == pytest.approx(125.1)
    assert hit.point.lat == pytest.approx(7.05)
    assert hit.distance == pytest.approx(distance_meters(Coordinate(7.05, 125.11), hit.point))
    # Re-running gives the same answer
    assert closest_point_on_route(Coordinate(7.05, 125.11), line) == hit


def test_closest_point_index_range():
    line = coords((7.0, 125.0), (7.0, 125.1), (7.1, 125.1), (7.1, 125.2))
    for p in [Coordinate(6.0, 124.0), Coordinate(8.0, 126.0), Coordinate(7.05, 125.05)]:
        assert 0 <= closest_point_on_route(p, line).segment_index <= len(line) - 2


def test_closest_point_on_single_point_route():
    only = Coordinate(7.0, 125.0)
    hit = closest_point_on_route(Coordinate(7.0, 125.01), (only,))
    assert hit.point == only
    assert hit.segment_index == 0


def test_crossing_routes_intersect():
    north_south = coords((7.0, 125.05), (7.1, 125.05))
    east_west = coords((7.05, 125.0), (7.05, 125.0495), (7.05, 125.1))
    assert routes_intersect(north_south, east_west, 100)

    hit = find_intersection_point(north_south, east_west, 100)
    assert hit is not None
    assert hit.distance <= 100
    assert hit.index_on_first == 0
    assert hit.index_on_second in (0, 1)


def test_distant_routes_do_not_intersect():
    first = coords((7.0, 125.0), (7.0, 125.1))
    second = coords((7.1, 125.0), (7.1, 125.1))
    assert not routes_intersect(first, second, 100)
    assert find_intersection_point(first, second, 100) is None


def test_intersection_picks_the_closest_pair():
    first = coords((7.0, 125.0), (7.0, 125.1))
    # Two near approaches: ~90 m at the start, ~10 m further along
    second = coords((7.0008, 125.0), (7.0008, 125.05), (7.00009, 125.08))
    hit = find_intersection_point(first, second, 100)
    assert hit.distance < 20
    assert hit.index_on_second == 1


def reference_intersection(first, second, threshold):
    """Pairwise scan with the scalar helpers, in segment-pair order"""
    def segments(line):
        if len(line) == 1:
            return [(line[0], line[0])]
        return list(zip(line[:-1], line[1:]))

    best = None
    for i, (a1, a2) in enumerate(segments(first)):
        for j, (b1, b2) in enumerate(segments(second)):
            for p, (s, e) in ((a1, (b1, b2)), (a2, (b1, b2)), (b1, (a1, a2)), (b2, (a1, a2))):
                q = closest_point_on_segment(p, s, e).point
                d = distance_meters(p, q)
                if d <= threshold and (best is None or d < best[0]):
                    best = (d, q, i, j)
    return best


def wandering_line(rng, n, start):
    steps = rng.uniform(-0.002, 0.002, size=(n - 1, 2))
    walk = np.vstack(((0.0, 0.0), np.cumsum(steps, axis=0))) + (start.lat, start.lng)
    return tuple(Coordinate(float(y), float(x)) for y, x in walk)


@pytest.mark.parametrize("seed", [3, 7, 11])
def test_intersection_matches_pairwise_scan(seed):
    rng = np.random.RandomState(seed)
    # More rows than one batch so the batch offsets are exercised
    first = wandering_line(rng, 300, Coordinate(7.07, 125.60))
    # Starts ~55 m off a vertex past the first batch
    second = wandering_line(rng, 120, Coordinate(first[280].lat + 0.0005, first[280].lng))

    expected = reference_intersection(first, second, 150)
    hit = find_intersection_point(first, second, 150)

    assert expected is not None
    assert hit.distance == pytest.approx(expected[0], abs=1e-6)
    assert hit.point.lat == pytest.approx(expected[1].lat, abs=1e-12)
    assert hit.point.lng == pytest.approx(expected[1].lng, abs=1e-12)
    # Equal-distance candidates may sit on neighbouring segments
    pair = reference_intersection(first[hit.index_on_first:hit.index_on_first + 2],
                                  second[hit.index_on_second:hit.index_on_second + 2], 150)
    assert pair[0] == pytest.approx(expected[0], abs=1e-6)
    assert routes_intersect(first, second, 150)


def test_intersection_against_lone_point():
    line = coords((7.0, 125.0), (7.0, 125.1))
    stop = coords((7.0005, 125.05))
    hit = find_intersection_point(line, stop, 100)
    assert hit.index_on_first == 0
    assert hit.index_on_second == 0
    assert hit.point.lat == 7.0
    assert hit.point.lng == pytest.approx(125.05)
    assert hit.distance == pytest.approx(distance_meters(stop[0], hit.point))
    assert find_intersection_point(line, (), 100) is None


def test_far_apart_routes_are_skipped():
    davao = coords((7.0, 125.0), (7.0, 125.1))
    cebu = coords((10.3, 123.9), (10.3, 124.0))
    assert not routes_intersect(davao, cebu, 3000)
    assert find_intersection_point(davao, cebu, 3000) is None


def test_threshold_padding_keeps_near_misses():
    # Boxes sit ~90 m apart in latitude; still within a 100 m threshold
    first = coords((7.0, 125.0), (7.0, 125.01))
    second = coords((7.0008, 125.0), (7.0008, 125.01))
    hit = find_intersection_point(first, second, 100)
    assert hit is not None
    assert hit.distance == pytest.approx(distance_meters(first[0], second[0]))
    # Every candidate ties; the first segment start projected onto the second wins
    assert hit.point == second[0]


def test_closest_endpoints():
    first = coords((7.0, 125.0), (7.0, 125.1))
    second = coords((7.0, 125.102), (7.1, 125.2))
    gap = closest_endpoints(first, second)
    assert gap.first_at_tail
    assert not gap.second_at_tail
    assert gap.first_point == first[-1]
    assert gap.second_point == second[0]
    assert gap.distance == pytest.approx(distance_meters(first[-1], second[0]))
    assert calculate_route_gap(first, second) == gap.distance
