"""
SegmentScorer: one RouteSegment per route part for an origin/destination pair.
"""

import logging
from typing import List, Mapping, Sequence

from .models.route_segments import Coordinate, Polyline, RouteSegment
from .utils.geo_utils import closest_point_on_route, path_length_meters
from .utils.path_utils import trim_between_points

REACH_DESTINATION_M = 500.0

logger = logging.getLogger(__name__)


def score_part(route_id: str, part_index: int, part: Polyline, origin: Coordinate,
               destination: Coordinate, reach_destination_m: float = REACH_DESTINATION_M) -> RouteSegment:
    """Project both query points onto the part and trim it between them"""
    to_start = closest_point_on_route(origin, part)
    to_end = closest_point_on_route(destination, part)
    trimmed = trim_between_points(part, to_start, to_end)
    return RouteSegment(
        route_id=route_id,
        part_index=part_index,
        part=part,
        trimmed_path=trimmed,
        closest_to_start=to_start,
        closest_to_end=to_end,
        trimmed_length=path_length_meters(trimmed),
        reaches_destination=to_end.distance <= reach_destination_m,
    )


class SegmentScorer:
    """Scores every part of every route; filtering and ranking happen downstream"""

    def __init__(self, reach_destination_m: float = REACH_DESTINATION_M):
        self.reach_destination_m = reach_destination_m

    def score_all(self, origin: Coordinate, destination: Coordinate,
                  corpus: Mapping[str, Sequence[Polyline]]) -> List[RouteSegment]:
        segments: List[RouteSegment] = []
        for route_id, parts in corpus.items():
            for part_index, part in enumerate(parts):
                if not part:
                    continue
                segment = score_part(route_id, part_index, tuple(part), origin, destination,
                                     self.reach_destination_m)
                logger.debug(
                    f"Scored {segment.key}: start={segment.distance_to_start:.0f}m "
                    f"end={segment.distance_to_end:.0f}m trimmed={segment.trimmed_length:.0f}m "
                    f"reaches={segment.reaches_destination}"
                )
                segments.append(segment)
        logger.info(f"Scored {len(segments)} segments across {len(corpus)} routes")
        return segments
