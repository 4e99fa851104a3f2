#!/usr/bin/env python3
"""
JRoute Routing Engine - Flask Web API Blueprint
Jeepney route matching and path stitching for the commuter map
"""

import time
from typing import Any, Dict, Optional, Tuple

from flask import Blueprint, jsonify, request

from jeeprouting.config import config
from jeeprouting.core_route_composer import RouteComposer
from jeeprouting.corpus_cache import RouteCorpusCache
from jeeprouting.exceptions import ConfigurationError, InvalidCoordinatesError
from jeeprouting.logger import logger
from jeeprouting.models.route_segments import Coordinate
from jeeprouting.services.directions import GoogleDirectionsClient
from jeeprouting.services.route_store import RouteStoreClient
from jeeprouting.utils.fare_utils import calculate_discounted_fare, calculate_fare

routing_bp = Blueprint('routing_bp', __name__)

# Global composer instance
route_composer: Optional[RouteComposer] = None


def initialize_route_composer(composer: Optional[RouteComposer] = None) -> RouteComposer:
    """Install ``composer``, or build one from the environment configuration"""
    global route_composer
    if composer is None:
        try:
            config.validate()
            store = RouteStoreClient(**config.get_route_store_config())
            directions = GoogleDirectionsClient(**config.get_directions_config())
            composer = RouteComposer(RouteCorpusCache(store), directions, config.get_thresholds())
        except Exception as e:
            logger.error(f"Failed to initialize route composer: {e}")
            raise
    route_composer = composer
    logger.info("Route composer initialized successfully")
    return route_composer


def validate_coordinates(lat: float, lon: float) -> bool:
    """Validate coordinate bounds"""
    return -90 <= lat <= 90 and -180 <= lon <= 180


def parse_coordinate(value: Any, label: str) -> Coordinate:
    """``{"lat", "lon"}`` body field to a Coordinate"""
    if not isinstance(value, dict) or 'lat' not in value or 'lon' not in value:
        raise InvalidCoordinatesError(f"{label} coordinates required")
    try:
        lat = float(value['lat'])
        lon = float(value['lon'])
    except (TypeError, ValueError):
        raise InvalidCoordinatesError(f"{label} coordinates must be numbers")
    if not validate_coordinates(lat, lon):
        raise InvalidCoordinatesError(f"Invalid {label} coordinates")
    return Coordinate(lat, lon)


def _not_initialized() -> Tuple[Any, int]:
    return jsonify({'error': 'Route composer not initialized'}), 500


@routing_bp.route('/routing/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    if route_composer is None:
        return jsonify({'status': 'error', 'message': 'Route composer not initialized'}), 500

    return jsonify({
        'status': 'healthy',
        'message': 'JRoute Routing Engine is running',
        'cached_routes': route_composer.corpus_cache.cached_route_count,
        'timestamp': time.time()
    })


@routing_bp.route('/routing', methods=['GET'])
def index():
    """Root endpoint"""
    return jsonify({
        'name': 'JRoute Routing Engine',
        'version': '1.0.0',
        'description': 'Jeepney route matching and path stitching',
        'endpoints': {
            'health': '/routing/health',
            'route': '/routing/route',
            'fare': '/routing/fare',
            'invalidate_cache': '/routing/cache/invalidate'
        }
    })


@routing_bp.route('/routing/route', methods=['POST'])
def route():
    """Build a stitched jeepney trip between two coordinates"""
    if route_composer is None:
        return _not_initialized()

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'No data provided'}), 400
    try:
        origin = parse_coordinate(data.get('start'), 'start')
        destination = parse_coordinate(data.get('end'), 'end')
    except InvalidCoordinatesError as e:
        return jsonify({'error': str(e)}), 400
    passenger_type = data.get('passenger_type', 'regular')

    try:
        outcome = route_composer.build_route(origin, destination)
    except ConfigurationError as e:
        logger.error(f"/route configuration error: {e}")
        return jsonify({'error': str(e)}), 500

    if not outcome.ok:
        logger.warning(f"/route: {outcome.message}")
        return jsonify(outcome.to_dict()), 404

    out: Dict[str, Any] = outcome.to_dict()
    out['summary'] = outcome.summary()
    out['fare'] = outcome.fare_summary(passenger_type)
    return jsonify(out)


@routing_bp.route('/routing/cache/invalidate', methods=['POST'])
def invalidate_cache():
    """Drop cached route data so the next query reloads it"""
    if route_composer is None:
        return _not_initialized()
    route_composer.corpus_cache.invalidate()
    return jsonify({'status': 'ok', 'message': 'Route cache cleared'})


@routing_bp.route('/routing/fare', methods=['GET'])
def fare():
    """Fare for a distance in kilometers"""
    try:
        km = float(request.args.get('km', ''))
    except ValueError:
        return jsonify({'error': 'km must be a number'}), 400
    if km < 0:
        return jsonify({'error': 'km must not be negative'}), 400

    passenger_type = request.args.get('passenger_type', 'regular')
    regular = calculate_fare(km)
    return jsonify({
        'distance_km': km,
        'passenger_type': passenger_type,
        'regular': regular,
        'discounted': calculate_discounted_fare(regular),
        'payable': calculate_fare(km, passenger_type)
    })
