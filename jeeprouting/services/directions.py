"""
Directions provider client (Google Directions API).
"""

import time
from typing import List

import polyline as _poly
import requests

from ..exceptions import ConfigurationError, DirectionsError
from ..logger import logger
from ..models.route_segments import Coordinate

DIRECTIONS_URL = 'https://maps.googleapis.com/maps/api/directions/json'

MODE_DRIVING = 'driving'
MODE_WALKING = 'walking'
TRAVEL_MODES = (MODE_DRIVING, MODE_WALKING)


def decode_polyline(encoded: str) -> List[Coordinate]:
    """Decode an encoded polyline (1e-5 degree precision) into coordinates"""
    if not encoded:
        raise DirectionsError("Empty encoded polyline", status='EMPTY_POLYLINE')
    try:
        pairs = _poly.decode(encoded, 5)
    except (IndexError, ValueError, TypeError) as e:
        raise DirectionsError(f"Corrupt encoded polyline: {e}", status='CORRUPT_POLYLINE') from e
    return [Coordinate(lat, lng) for lat, lng in pairs]


class GoogleDirectionsClient:
    """Road or foot path between two coordinates, as a decoded coordinate list"""

    def __init__(self, api_key: str, timeout: float = 10.0, session: requests.Session = None):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_path(self, origin: Coordinate, destination: Coordinate,
                 mode: str = MODE_DRIVING) -> List[Coordinate]:
        if not self.api_key:
            raise ConfigurationError("Google Maps API key not configured")
        if mode not in TRAVEL_MODES:
            raise ValueError(f"Unsupported travel mode: {mode}")

        params = {
            'origin': f"{origin.lat},{origin.lng}",
            'destination': f"{destination.lat},{destination.lng}",
            'mode': mode,
            'key': self.api_key,
        }
        started = time.time()
        success = False
        try:
            try:
                resp = self.session.get(DIRECTIONS_URL, params=params, timeout=self.timeout)
            except requests.RequestException as e:
                raise DirectionsError(f"Directions request failed: {e}", status='REQUEST_FAILED') from e

            if resp.status_code != 200:
                raise DirectionsError(f"Directions request failed with HTTP {resp.status_code}",
                                      status=f"HTTP_{resp.status_code}")
            try:
                data = resp.json()
            except ValueError as e:
                raise DirectionsError(f"Directions response is not JSON: {e}", status='INVALID_RESPONSE') from e
            if not isinstance(data, dict):
                raise DirectionsError("Directions response is not a JSON object", status='INVALID_RESPONSE')

            status = data.get('status')
            if status != 'OK':
                message = data.get('error_message', '')
                raise DirectionsError(f"Directions API error: {status} {message}".strip(),
                                      status=status or 'UNKNOWN_ERROR')

            routes = data.get('routes') or []
            if not isinstance(routes, list):
                raise DirectionsError("Directions routes are not a list", status='INVALID_RESPONSE')
            if not routes:
                raise DirectionsError("No routes in directions response", status='ZERO_RESULTS')

            overview = routes[0].get('overview_polyline') if isinstance(routes[0], dict) else None
            if not isinstance(overview, dict):
                raise DirectionsError("Directions route has no overview polyline", status='INVALID_RESPONSE')
            encoded = overview.get('points')
            path = decode_polyline(encoded)
            if not path:
                raise DirectionsError("Directions polyline decoded to no points", status='EMPTY_POLYLINE')
            success = True
            return path
        finally:
            logger.log_api_call(f"directions:{mode}", (time.time() - started) * 1000, success)

    def close(self):
        self.session.close()
