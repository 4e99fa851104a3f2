import pytest

from jeeprouting.core_route_composer import RouteComposer
from jeeprouting.corpus_cache import RouteCorpusCache
from jeeprouting.exceptions import ConfigurationError, DirectionsError, RouteStoreError
from jeeprouting.models.route_segments import Coordinate

# Davao-area query points (lat, lng)
ORIGIN = Coordinate(7.1000, 125.4500)
DESTINATION = Coordinate(7.2000, 125.4700)

DRIVING_PATH = [ORIGIN, Coordinate(7.1500, 125.4600), DESTINATION]


def coords(*pairs):
    return tuple(Coordinate(lat, lng) for lat, lng in pairs)


def line_feature(*pairs):
    """GeoJSON LineString feature; wire order is [lon, lat]"""
    return {
        'type': 'Feature',
        'properties': {},
        'geometry': {'type': 'LineString', 'coordinates': [[lng, lat] for lat, lng in pairs]},
    }


def feature_collection(*features):
    return {'type': 'FeatureCollection', 'features': list(features)}


class FakeRouteStore:
    """In-memory Route Data Store; ``routes`` maps id -> list of (lat, lng) lines"""

    def __init__(self, routes=None, fail_index=False, failing=()):
        self.routes = dict(routes or {})
        self.fail_index = fail_index
        self.failing = set(failing)
        self.index_calls = 0
        self.geometry_calls = []

    def fetch_index(self):
        self.index_calls += 1
        if self.fail_index:
            raise RouteStoreError("index unavailable")
        return list(self.routes)

    def fetch_geometry(self, route_id):
        self.geometry_calls.append(route_id)
        if route_id in self.failing:
            raise RouteStoreError(f"{route_id} unavailable")
        return feature_collection(*(line_feature(*line) for line in self.routes[route_id]))


class FakeDirections:
    """Directions collaborator: fixed driving path, straight-line walking paths"""

    def __init__(self, driving=None, driving_error=None, walking_error=None, walking_empty=False):
        self.driving = list(DRIVING_PATH if driving is None else driving)
        self.driving_error = driving_error
        self.walking_error = walking_error
        self.walking_empty = walking_empty
        self.calls = []

    def get_path(self, origin, destination, mode='driving'):
        self.calls.append((origin, destination, mode))
        if mode == 'driving':
            if self.driving_error is not None:
                raise self.driving_error
            return list(self.driving)
        if self.walking_error is not None:
            raise self.walking_error
        if self.walking_empty:
            return []
        midpoint = Coordinate((origin.lat + destination.lat) / 2, (origin.lng + destination.lng) / 2)
        return [origin, midpoint, destination]

    @property
    def walking_calls(self):
        return [c for c in self.calls if c[2] == 'walking']


class UnconfiguredDirections:
    def get_path(self, origin, destination, mode='driving'):
        raise ConfigurationError("Google Maps API key not configured")


def make_composer(routes=None, directions=None, **store_kwargs):
    store = FakeRouteStore(routes, **store_kwargs)
    return RouteComposer(RouteCorpusCache(store), directions or FakeDirections())


@pytest.fixture
def walking_failure():
    return DirectionsError("walking unavailable", status='ZERO_RESULTS')
