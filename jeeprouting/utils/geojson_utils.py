import logging
from typing import Any, Dict, List

from ..exceptions import MalformedGeometryError
from ..models.route_segments import Coordinate, Polyline

logger = logging.getLogger(__name__)

LINE_TYPES = ('LineString', 'MultiLineString')


def _to_polyline(line: Any) -> Polyline:
    """Wire order is [lon, lat]; internal order is (lat, lng)"""
    if not isinstance(line, list):
        raise MalformedGeometryError(f"Expected a coordinate list, got {type(line).__name__}")
    points = []
    for pair in line:
        if not isinstance(pair, (list, tuple)) or len(pair) < 2:
            raise MalformedGeometryError(f"Bad coordinate pair: {pair!r}")
        lon, lat = pair[0], pair[1]
        if isinstance(lon, bool) or isinstance(lat, bool) or \
                not isinstance(lon, (int, float)) or not isinstance(lat, (int, float)):
            raise MalformedGeometryError(f"Non-numeric coordinate pair: {pair!r}")
        points.append(Coordinate(float(lat), float(lon)))
    return tuple(points)


def feature_polylines(feature: Dict[str, Any]) -> List[Polyline]:
    """
    Polylines contained in one GeoJSON feature.

    LineString gives one polyline, MultiLineString one per line. Other
    geometry types (Point, Polygon, ...) give none. Raises
    ``MalformedGeometryError`` when a line geometry is unusable.
    """
    if not isinstance(feature, dict):
        raise MalformedGeometryError("Feature is not an object")
    geometry = feature.get('geometry')
    if not isinstance(geometry, dict):
        raise MalformedGeometryError("Feature has no geometry")

    geom_type = geometry.get('type') or ''
    if geom_type not in LINE_TYPES:
        logger.debug(f"Ignoring unsupported geometry type: {geom_type}")
        return []

    coords = geometry.get('coordinates')
    if coords is None:
        raise MalformedGeometryError(f"{geom_type} has no coordinates")

    lines = [coords] if geom_type == 'LineString' else coords
    if not isinstance(lines, list):
        raise MalformedGeometryError(f"{geom_type} coordinates are not a list")
    return [pl for pl in (_to_polyline(line) for line in lines) if pl]


def parse_route_geometry(route_id: str, document: Any) -> List[Polyline]:
    """
    Parse a route's FeatureCollection into its polyline parts.

    Bad features are skipped one by one; a bad document yields no parts.
    """
    if not isinstance(document, dict):
        logger.warning(f"Invalid GeoJSON structure for {route_id}")
        return []

    features = document.get('features') or []
    if not isinstance(features, list):
        logger.warning(f"'features' is not a list for {route_id}")
        return []
    if not features:
        logger.warning(f"No features found in {route_id}")

    parts: List[Polyline] = []
    for i, feature in enumerate(features):
        try:
            parts.extend(feature_polylines(feature))
        except MalformedGeometryError as e:
            logger.warning(f"Skipping feature [{i}] of {route_id}: {e}")
    logger.debug(f"Parsed {len(parts)} parts for {route_id}")
    return parts
