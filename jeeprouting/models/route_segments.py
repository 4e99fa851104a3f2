from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from ..exceptions import RouteNotFoundError


@dataclass(frozen=True)
class Coordinate:
    """WGS84 point in degrees"""
    lat: float
    lng: float

    def to_dict(self) -> Dict[str, float]:
        return {'lat': self.lat, 'lng': self.lng}


# Ordered, non-empty; order is the direction of travel along the physical route
Polyline = Tuple[Coordinate, ...]


@dataclass(frozen=True)
class SegmentProjection:
    """Projection of a point onto a single segment, with its clamped parameter"""
    point: Coordinate
    t: float


@dataclass(frozen=True)
class ClosestPoint:
    """Closest point on a polyline: where it is, how far, and on which segment"""
    point: Coordinate
    distance: float
    segment_index: int


@dataclass(frozen=True)
class IntersectionPoint:
    """Approximate meeting point of two polylines"""
    point: Coordinate
    distance: float
    index_on_first: int
    index_on_second: int


@dataclass(frozen=True)
class EndpointGap:
    """Closest pair of endpoints between two polylines"""
    distance: float
    first_point: Coordinate
    second_point: Coordinate
    first_at_tail: bool
    second_at_tail: bool


@dataclass(frozen=True)
class RouteSegment:
    """Query-specific candidate derived from one route part"""
    route_id: str
    part_index: int
    part: Polyline
    trimmed_path: Polyline
    closest_to_start: ClosestPoint
    closest_to_end: ClosestPoint
    trimmed_length: float
    reaches_destination: bool

    @property
    def key(self) -> str:
        return f"{self.route_id}#{self.part_index}"

    @property
    def distance_to_start(self) -> float:
        return self.closest_to_start.distance

    @property
    def distance_to_end(self) -> float:
        return self.closest_to_end.distance


class PieceKind(str, Enum):
    ROUTE = 'route'
    WALKING = 'walking'
    DRIVING_FALLBACK = 'driving-fallback'


# Presentation classification per piece kind
PIECE_STYLES = {
    PieceKind.ROUTE: 'solid',
    PieceKind.WALKING: 'dashed',
    PieceKind.DRIVING_FALLBACK: 'grey',
}

ROUTE_COLOR_POOL_SIZE = 7


def route_display_name(route_id: str) -> str:
    """'bago-aplaya' -> 'Bago Aplaya'"""
    words = route_id.replace('_', '-').split('-')
    return ' '.join(w[:1].upper() + w[1:].lower() for w in words if w)


@dataclass(frozen=True)
class PathPiece:
    """One tagged polyline of a stitched trip"""
    kind: PieceKind
    path: Polyline
    route_id: Optional[str] = None
    part_index: Optional[int] = None
    color_index: Optional[int] = None

    @property
    def label(self) -> str:
        if self.kind == PieceKind.ROUTE:
            return f"{self.route_id}-{self.part_index}"
        return self.kind.value

    @property
    def display_name(self) -> str:
        if self.kind == PieceKind.ROUTE:
            return route_display_name(self.route_id or '')
        if self.kind == PieceKind.WALKING:
            return 'Walking'
        return 'Suggested Route'

    @property
    def style(self) -> str:
        return PIECE_STYLES[self.kind]

    @property
    def distance_km(self) -> float:
        from ..utils.geo_utils import path_length_meters
        return path_length_meters(self.path) / 1000.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'label': self.label,
            'kind': self.kind.value,
            'name': self.display_name,
            'style': self.style,
            'route_id': self.route_id,
            'part_index': self.part_index,
            'color_index': self.color_index,
            'distance_km': round(self.distance_km, 3),
            'path': [c.to_dict() for c in self.path],
        }


class LadderCase(str, Enum):
    """Matching strategies, in priority order"""
    SINGLE_ROUTE_COMPLETE = 'single-route-complete'
    SINGLE_ROUTE_WITH_WALKING = 'single-route-with-walking'
    TWO_ROUTE_INTERSECTING = 'two-route-intersecting'
    TWO_ROUTE_WALKING = 'two-route-walking'
    THREE_ROUTE_RELAY = 'three-route-relay'
    RELAXED_RETRY = 'relaxed-retry'
    FALLBACK = 'fallback'


@dataclass(frozen=True)
class RoutingTrace:
    """Which case matched, why, and what was tried before it"""
    case: LadderCase
    reason: str
    attempted: Tuple[LadderCase, ...] = ()
    details: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Read-only copy; list values become tuples
        frozen = {k: tuple(v) if isinstance(v, list) else v for k, v in self.details.items()}
        object.__setattr__(self, 'attempted', tuple(self.attempted))
        object.__setattr__(self, 'details', MappingProxyType(frozen))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'case': self.case.value,
            'reason': self.reason,
            'attempted': [c.value for c in self.attempted],
            'details': {k: list(v) if isinstance(v, tuple) else v for k, v in self.details.items()},
        }


@dataclass(frozen=True)
class RoutingResult:
    """Engine output for one query"""
    pieces: Tuple[PathPiece, ...]
    stitched_path: Polyline
    driving_path: Polyline
    used_fallback: bool
    trace: RoutingTrace

    @property
    def ok(self) -> bool:
        return True

    @property
    def total_distance_km(self) -> float:
        return sum(p.distance_km for p in self.pieces)

    @property
    def walking_distance_km(self) -> float:
        return sum(p.distance_km for p in self.pieces if p.kind == PieceKind.WALKING)

    @property
    def transit_distance_km(self) -> float:
        return sum(p.distance_km for p in self.pieces if p.kind == PieceKind.ROUTE)

    @property
    def num_transfers(self) -> int:
        return max(0, sum(1 for p in self.pieces if p.kind == PieceKind.ROUTE) - 1)

    @property
    def route_names(self) -> Tuple[str, ...]:
        return tuple(p.display_name for p in self.pieces if p.kind == PieceKind.ROUTE)

    def fare_summary(self, passenger_type: str = 'regular') -> Dict[str, float]:
        from ..utils.fare_utils import calculate_fare, calculate_discounted_fare
        km = self.total_distance_km
        regular = calculate_fare(km)
        return {
            'distance_km': round(km, 3),
            'regular': regular,
            'discounted': calculate_discounted_fare(regular),
            'payable': calculate_fare(km, passenger_type),
        }

    def summary(self) -> Dict[str, Any]:
        return {
            'total_distance': round(self.total_distance_km, 3),
            'transit_distance': round(self.transit_distance_km, 3),
            'walking_distance': round(self.walking_distance_km, 3),
            'num_transfers': self.num_transfers,
            'routes': list(self.route_names),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'pieces': [p.to_dict() for p in self.pieces],
            'stitched_path': [c.to_dict() for c in self.stitched_path],
            'driving_path': [c.to_dict() for c in self.driving_path],
            'used_fallback': self.used_fallback,
            'trace': self.trace.to_dict(),
        }


class NotFoundReason(str, Enum):
    FALLBACK_UNAVAILABLE = 'fallback-unavailable'
    EMPTY_FALLBACK = 'empty-fallback'


@dataclass(frozen=True)
class RouteNotFound:
    """Expected 'nothing to show' outcome of build_route"""
    reason: NotFoundReason
    message: str

    @property
    def ok(self) -> bool:
        return False

    def raise_error(self):
        raise RouteNotFoundError(self.message, reason=self.reason)

    def to_dict(self) -> Dict[str, Any]:
        return {'error': 'route_not_found', 'reason': self.reason.value, 'message': self.message}
