"""
Route Composer: matches an origin/destination pair to the jeepney route corpus
and stitches one, two or three route pieces (plus walking links) into a trip.

Cases are tried in a fixed priority order and the first one that produces a
path wins:

1. single-route-complete      one route from near the origin to the destination
2. single-route-with-walking  one route, then a walk to the destination
3. two-route-intersecting     two routes that cross near each other
4. two-route-walking          two routes joined by a short walk between endpoints
5. three-route-relay          nearest start and end routes joined by a connector
6. relaxed-retry              3 and 5 again with wider distance bounds
7. fallback                   the generic driving path

Candidate pairs are searched in nested nearest-first order and the first
qualifying pair wins. That finds a workable trip quickly, not the shortest one.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .config import RoutingThresholds
from .corpus_cache import RouteCorpusCache
from .exceptions import DirectionsError
from .logger import logger as route_logger
from .models.route_segments import (
    ROUTE_COLOR_POOL_SIZE,
    ClosestPoint,
    Coordinate,
    IntersectionPoint,
    LadderCase,
    NotFoundReason,
    PathPiece,
    PieceKind,
    Polyline,
    RouteNotFound,
    RouteSegment,
    RoutingResult,
    RoutingTrace,
)
from .scoring import SegmentScorer
from .services.directions import MODE_DRIVING, MODE_WALKING
from .utils.geo_utils import closest_endpoints, distance_meters, find_intersection_point, path_length_meters
from .utils.path_utils import trim_between_points, trim_from_index, trim_to_index

BuildRouteOutcome = Union[RoutingResult, RouteNotFound]


@dataclass(frozen=True)
class _RouteLeg:
    segment: RouteSegment
    path: Polyline


@dataclass(frozen=True)
class _WalkLeg:
    start: Coordinate
    end: Coordinate


@dataclass
class _Plan:
    """A matched case before any walking paths are requested"""
    case: LadderCase
    reason: str
    legs: List[Union[_RouteLeg, _WalkLeg]]
    details: Dict[str, Any] = field(default_factory=dict)


def _at(point: Coordinate, segment_index: int, distance: float = 0.0) -> ClosestPoint:
    return ClosestPoint(point=point, distance=distance, segment_index=segment_index)


def _log_request(origin: Coordinate, destination: Coordinate, case: str, started: float, success: bool):
    route_logger.log_route_request((origin.lat, origin.lng), (destination.lat, destination.lng),
                                   case, (time.time() - started) * 1000, success)


class _LadderQuery:
    """Per-query state: ranked segments, thresholds and an intersection memo"""

    def __init__(self, origin: Coordinate, destination: Coordinate,
                 segments: Sequence[RouteSegment], thresholds: RoutingThresholds):
        self.origin = origin
        self.destination = destination
        self.thresholds = thresholds
        # Reaching segments first, then nearest to the destination
        self.ranked: List[RouteSegment] = sorted(
            segments, key=lambda s: (not s.reaches_destination, s.distance_to_end))
        self._intersections: Dict[Tuple[str, str, float], Optional[IntersectionPoint]] = {}

    def start_candidates(self, max_distance: float) -> List[RouteSegment]:
        return sorted((s for s in self.ranked if s.distance_to_start <= max_distance),
                      key=lambda s: s.distance_to_start)

    def end_candidates(self, max_distance: Optional[float] = None) -> List[RouteSegment]:
        """Reaching segments, or those within ``max_distance`` when given"""
        if max_distance is None:
            chosen = (s for s in self.ranked if s.reaches_destination)
        else:
            chosen = (s for s in self.ranked if s.distance_to_end <= max_distance)
        return sorted(chosen, key=lambda s: s.distance_to_end)

    def intersection(self, first: RouteSegment, second: RouteSegment,
                     threshold: float) -> Optional[IntersectionPoint]:
        key = (first.key, second.key, threshold)
        if key not in self._intersections:
            self._intersections[key] = find_intersection_point(first.part, second.part, threshold)
        return self._intersections[key]


class RouteComposer:
    """Builds a stitched trip for one origin/destination pair"""

    def __init__(self, corpus_cache: RouteCorpusCache, directions,
                 thresholds: Optional[RoutingThresholds] = None,
                 scorer: Optional[SegmentScorer] = None):
        self.corpus_cache = corpus_cache
        self.directions = directions
        self.thresholds = thresholds or RoutingThresholds()
        self.scorer = scorer or SegmentScorer(self.thresholds.reach_destination_m)
        self.logger = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    #  Public entry point
    # ------------------------------------------------------------------
    def build_route(self, origin: Coordinate, destination: Coordinate) -> BuildRouteOutcome:
        """
        Match the trip against the route corpus.

        Returns a ``RoutingResult``, or ``RouteNotFound`` when even the
        driving fallback is unavailable. ``ConfigurationError`` from a
        collaborator propagates unchanged.
        """
        started = time.time()
        self.logger.info(f"Building route {origin} -> {destination}")

        try:
            driving_path = tuple(self.directions.get_path(origin, destination, MODE_DRIVING))
        except DirectionsError as e:
            self.logger.error(f"Driving fallback unavailable: {e} (status={e.status})")
            _log_request(origin, destination, NotFoundReason.FALLBACK_UNAVAILABLE.value, started, False)
            return RouteNotFound(NotFoundReason.FALLBACK_UNAVAILABLE,
                                 f"Driving directions unavailable: {e}")
        if not driving_path:
            _log_request(origin, destination, NotFoundReason.EMPTY_FALLBACK.value, started, False)
            return RouteNotFound(NotFoundReason.EMPTY_FALLBACK, "Driving directions returned no points")

        corpus = self.corpus_cache.load_corpus()
        segments = self.scorer.score_all(origin, destination, corpus)
        query = _LadderQuery(origin, destination, segments, self.thresholds)

        plan, attempted = self._run_ladder(query)
        if plan is None:
            reason = "route corpus is empty" if not segments else "no route combination matched"
            plan = _Plan(LadderCase.FALLBACK, reason, [])

        plan.details.setdefault('routes_loaded', len(corpus))
        plan.details.setdefault('segments_scored', len(segments))
        trace = RoutingTrace(case=plan.case, reason=plan.reason,
                             attempted=tuple(attempted), details=plan.details)

        if plan.case == LadderCase.FALLBACK:
            result = RoutingResult(
                pieces=(PathPiece(kind=PieceKind.DRIVING_FALLBACK, path=driving_path),),
                stitched_path=driving_path,
                driving_path=driving_path,
                used_fallback=True,
                trace=trace,
            )
        else:
            pieces = self._realize(plan)
            stitched: List[Coordinate] = []
            for piece in pieces:
                stitched.extend(piece.path)
            result = RoutingResult(
                pieces=tuple(pieces),
                stitched_path=tuple(stitched),
                driving_path=driving_path,
                used_fallback=False,
                trace=trace,
            )

        self.logger.info(f"Matched case {plan.case.value}: {plan.reason}")
        _log_request(origin, destination, plan.case.value, started, True)
        return result

    # ------------------------------------------------------------------
    #  Case ladder
    # ------------------------------------------------------------------
    def _run_ladder(self, q: _LadderQuery) -> Tuple[Optional[_Plan], List[LadderCase]]:
        steps = (
            (LadderCase.SINGLE_ROUTE_COMPLETE, self._single_route_complete),
            (LadderCase.SINGLE_ROUTE_WITH_WALKING, self._single_route_with_walking),
            (LadderCase.TWO_ROUTE_INTERSECTING, self._two_route_intersecting),
            (LadderCase.TWO_ROUTE_WALKING, self._two_route_walking),
            (LadderCase.THREE_ROUTE_RELAY, self._three_route_relay),
            (LadderCase.RELAXED_RETRY, self._relaxed_retry),
        )
        attempted: List[LadderCase] = []
        for case, step in steps:
            plan = step(q)
            if plan is not None:
                return plan, attempted
            self.logger.debug(f"Case {case.value}: no match")
            attempted.append(case)
        return None, attempted

    def _single_route_complete(self, q: _LadderQuery) -> Optional[_Plan]:
        t = q.thresholds
        for seg in q.end_candidates():
            if seg.distance_to_start > t.start_max_m:
                continue
            legs: List[Union[_RouteLeg, _WalkLeg]] = [_RouteLeg(seg, seg.trimmed_path)]
            walk = seg.distance_to_end > t.walking_residual_m
            if walk:
                legs.append(_WalkLeg(seg.closest_to_end.point, q.destination))
            return _Plan(
                LadderCase.SINGLE_ROUTE_COMPLETE,
                f"{seg.key} runs from near the origin to the destination",
                legs,
                {'routes': [seg.key], 'start_distance_m': round(seg.distance_to_start, 1),
                 'end_distance_m': round(seg.distance_to_end, 1), 'walking_leg': walk},
            )
        return None

    def _single_route_with_walking(self, q: _LadderQuery) -> Optional[_Plan]:
        t = q.thresholds
        for seg in q.end_candidates(t.walking_end_max_m):
            if seg.distance_to_start > t.start_max_m:
                continue
            return _Plan(
                LadderCase.SINGLE_ROUTE_WITH_WALKING,
                f"{seg.key} from near the origin, then walk to the destination",
                [_RouteLeg(seg, seg.trimmed_path), _WalkLeg(seg.closest_to_end.point, q.destination)],
                {'routes': [seg.key], 'start_distance_m': round(seg.distance_to_start, 1),
                 'end_distance_m': round(seg.distance_to_end, 1), 'walking_leg': True},
            )
        return None

    def _two_route_intersecting(self, q: _LadderQuery) -> Optional[_Plan]:
        t = q.thresholds
        return self._find_intersecting_pair(
            q, q.start_candidates(t.start_max_m), q.end_candidates(),
            t.intersection_m, LadderCase.TWO_ROUTE_INTERSECTING)

    def _two_route_walking(self, q: _LadderQuery) -> Optional[_Plan]:
        t = q.thresholds
        for a in q.start_candidates(t.start_max_m):
            for b in q.end_candidates():
                if a.route_id == b.route_id:
                    continue
                gap = closest_endpoints(a.part, b.part)
                allowed = t.walking_gap_max_m
                if b.trimmed_length < t.short_leg_m:
                    allowed = t.walking_gap_extended_m
                if gap.distance > allowed:
                    continue

                # Ride A to the endpoint nearest B, ride B from the endpoint nearest A
                if gap.first_at_tail:
                    leg_a = trim_from_index(a.part, a.closest_to_start.segment_index, a.closest_to_start.point)
                else:
                    leg_a = trim_between_points(a.part, a.closest_to_start, _at(a.part[0], 0))
                if gap.second_at_tail:
                    leg_b = trim_between_points(b.part, _at(b.part[-1], max(len(b.part) - 2, 0)),
                                                b.closest_to_end)
                else:
                    leg_b = trim_to_index(b.part, b.closest_to_end.segment_index, b.closest_to_end.point)

                legs: List[Union[_RouteLeg, _WalkLeg]] = [_RouteLeg(a, leg_a)]
                if gap.distance > t.walking_residual_m:
                    legs.append(_WalkLeg(gap.first_point, gap.second_point))
                legs.append(_RouteLeg(b, leg_b))
                return _Plan(
                    LadderCase.TWO_ROUTE_WALKING,
                    f"{a.key} then walk {gap.distance:.0f} m to {b.key}",
                    legs,
                    {'routes': [a.key, b.key], 'gap_m': round(gap.distance, 1),
                     'gap_allowed_m': allowed},
                )
        return None

    def _three_route_relay(self, q: _LadderQuery) -> Optional[_Plan]:
        t = q.thresholds
        starts = q.start_candidates(t.start_max_m)[:1]
        ends = q.end_candidates()[:1]
        return self._find_relay(q, starts, ends, t.intersection_m, LadderCase.THREE_ROUTE_RELAY)

    def _relaxed_retry(self, q: _LadderQuery) -> Optional[_Plan]:
        t = q.thresholds
        starts = q.start_candidates(t.relaxed_max_m)
        ends = q.end_candidates(t.relaxed_max_m)
        self.logger.debug(f"Relaxed retry: {len(starts)} start / {len(ends)} end candidates")

        plan = self._find_intersecting_pair(q, starts, ends, t.relaxed_intersection_m,
                                            LadderCase.RELAXED_RETRY)
        if plan is None:
            plan = self._find_relay(q, starts, ends, t.relaxed_intersection_m, LadderCase.RELAXED_RETRY)
        return plan

    # ------------------------------------------------------------------
    #  Shared searches
    # ------------------------------------------------------------------
    def _find_intersecting_pair(self, q: _LadderQuery, starts: Sequence[RouteSegment],
                                ends: Sequence[RouteSegment], threshold: float,
                                case: LadderCase) -> Optional[_Plan]:
        t = q.thresholds
        for a in starts:
            for b in ends:
                if a.route_id == b.route_id:
                    continue
                hit = q.intersection(a, b, threshold)
                if hit is None:
                    continue

                leg_a = trim_between_points(a.part, a.closest_to_start,
                                            _at(hit.point, hit.index_on_first, hit.distance))
                leg_b = trim_between_points(b.part, _at(hit.point, hit.index_on_second, hit.distance),
                                            b.closest_to_end)
                leg_b_length = path_length_meters(leg_b)
                to_destination = distance_meters(hit.point, q.destination)
                details = {'strategy': LadderCase.TWO_ROUTE_INTERSECTING.value,
                           'intersection_m': round(hit.distance, 1),
                           'threshold_m': threshold}

                if leg_b_length < t.short_leg_m and to_destination <= t.reach_destination_m:
                    # Second ride too short to be worth it: walk from the crossing instead
                    details.update({'routes': [a.key], 'collapsed_second_leg': b.key,
                                    'walk_from_intersection_m': round(to_destination, 1)})
                    return _Plan(case, f"{a.key} to the {b.key} crossing, then walk",
                                 [_RouteLeg(a, leg_a), _WalkLeg(hit.point, q.destination)], details)

                details['routes'] = [a.key, b.key]
                return _Plan(case, f"{a.key} crosses {b.key}",
                             [_RouteLeg(a, leg_a), _RouteLeg(b, leg_b)], details)
        return None

    def _find_relay(self, q: _LadderQuery, starts: Sequence[RouteSegment],
                    ends: Sequence[RouteSegment], threshold: float,
                    case: LadderCase) -> Optional[_Plan]:
        for a in starts:
            for b in ends:
                if a.key == b.key:
                    continue
                for c in q.ranked:
                    if c.key in (a.key, b.key):
                        continue
                    first = q.intersection(a, c, threshold)
                    if first is None:
                        continue
                    second = q.intersection(c, b, threshold)
                    if second is None:
                        continue

                    leg_a = trim_between_points(a.part, a.closest_to_start,
                                                _at(first.point, first.index_on_first, first.distance))
                    leg_c = trim_between_points(c.part,
                                                _at(first.point, first.index_on_second, first.distance),
                                                _at(second.point, second.index_on_first, second.distance))
                    leg_b = trim_between_points(b.part,
                                                _at(second.point, second.index_on_second, second.distance),
                                                b.closest_to_end)
                    return _Plan(
                        case,
                        f"{a.key} -> {c.key} -> {b.key}",
                        [_RouteLeg(a, leg_a), _RouteLeg(c, leg_c), _RouteLeg(b, leg_b)],
                        {'strategy': LadderCase.THREE_ROUTE_RELAY.value,
                         'routes': [a.key, c.key, b.key],
                         'intersections_m': [round(first.distance, 1), round(second.distance, 1)],
                         'threshold_m': threshold},
                    )
        return None

    # ------------------------------------------------------------------
    #  Realization
    # ------------------------------------------------------------------
    def _realize(self, plan: _Plan) -> List[PathPiece]:
        """Turn legs into pieces, requesting walking paths only now"""
        pieces: List[PathPiece] = []
        colors = 0
        for leg in plan.legs:
            if isinstance(leg, _RouteLeg):
                pieces.append(PathPiece(
                    kind=PieceKind.ROUTE,
                    path=leg.path,
                    route_id=leg.segment.route_id,
                    part_index=leg.segment.part_index,
                    color_index=colors % ROUTE_COLOR_POOL_SIZE,
                ))
                colors += 1
            else:
                pieces.append(PathPiece(kind=PieceKind.WALKING, path=self._walking_path(leg.start, leg.end)))
        return pieces

    def _walking_path(self, start: Coordinate, end: Coordinate) -> Polyline:
        """Foot path from the provider, or a straight line when it fails"""
        try:
            path = tuple(self.directions.get_path(start, end, MODE_WALKING))
        except DirectionsError as e:
            self.logger.warning(f"Walking directions failed ({e.status}); using a straight line")
            return (start, end)
        if not path:
            self.logger.warning("Walking directions returned no points; using a straight line")
            return (start, end)
        return path
