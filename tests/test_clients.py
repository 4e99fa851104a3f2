import pytest
import requests

from jeeprouting.exceptions import ConfigurationError, DirectionsError, RouteStoreError
from jeeprouting.models.route_segments import Coordinate
from jeeprouting.services.directions import DIRECTIONS_URL, GoogleDirectionsClient, decode_polyline
from jeeprouting.services.route_store import RouteStoreClient

ENCODED = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"

A = Coordinate(7.10, 125.45)
B = Coordinate(7.20, 125.47)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, invalid_json=False):
        self.status_code = status_code
        self.payload = payload
        self.invalid_json = invalid_json

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value")
        return self.payload


class FakeSession:
    """Stands in for requests.Session; records every GET"""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []
        self.closed = False

    def get(self, url, params=None, timeout=None):
        self.requests.append((url, params, timeout))
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


def directions_payload(points=ENCODED, status='OK'):
    return {'status': status, 'routes': [{'overview_polyline': {'points': points}}]}


# ----- Polyline decoding -----

def test_decode_reference_polyline():
    path = decode_polyline(ENCODED)
    assert [(p.lat, p.lng) for p in path] == [
        pytest.approx((38.5, -120.2)),
        pytest.approx((40.7, -120.95)),
        pytest.approx((43.252, -126.453)),
    ]


def test_decode_empty_polyline():
    with pytest.raises(DirectionsError) as exc:
        decode_polyline('')
    assert exc.value.status == 'EMPTY_POLYLINE'


# ----- Directions client -----

def test_directions_request_and_decode():
    session = FakeSession(FakeResponse(payload=directions_payload()))
    client = GoogleDirectionsClient('test-key', timeout=5.0, session=session)

    path = client.get_path(A, B, 'walking')

    assert len(path) == 3
    url, params, timeout = session.requests[0]
    assert url == DIRECTIONS_URL
    assert params['origin'] == '7.1,125.45'
    assert params['destination'] == '7.2,125.47'
    assert params['mode'] == 'walking'
    assert params['key'] == 'test-key'
    assert timeout == 5.0


def test_directions_without_key():
    session = FakeSession(FakeResponse(payload=directions_payload()))
    client = GoogleDirectionsClient('', session=session)
    with pytest.raises(ConfigurationError):
        client.get_path(A, B)
    assert session.requests == []


def test_directions_rejects_unknown_mode():
    client = GoogleDirectionsClient('test-key', session=FakeSession())
    with pytest.raises(ValueError):
        client.get_path(A, B, 'flying')


@pytest.mark.parametrize("session,status", [
    (FakeSession(error=requests.ConnectionError("down")), 'REQUEST_FAILED'),
    (FakeSession(FakeResponse(status_code=503)), 'HTTP_503'),
    (FakeSession(FakeResponse(invalid_json=True)), 'INVALID_RESPONSE'),
    (FakeSession(FakeResponse(payload={'status': 'REQUEST_DENIED', 'error_message': 'bad key'})), 'REQUEST_DENIED'),
    (FakeSession(FakeResponse(payload={'status': 'OK', 'routes': []})), 'ZERO_RESULTS'),
    (FakeSession(FakeResponse(payload=directions_payload(points=''))), 'EMPTY_POLYLINE'),
    (FakeSession(FakeResponse(payload=['OK'])), 'INVALID_RESPONSE'),
    (FakeSession(FakeResponse(payload='OK')), 'INVALID_RESPONSE'),
    (FakeSession(FakeResponse(payload={'status': 'OK', 'routes': {'overview_polyline': ENCODED}})), 'INVALID_RESPONSE'),
    (FakeSession(FakeResponse(payload={'status': 'OK', 'routes': ['x']})), 'INVALID_RESPONSE'),
    (FakeSession(FakeResponse(payload={'status': 'OK', 'routes': [{'overview_polyline': ENCODED}]})), 'INVALID_RESPONSE'),
])
def test_directions_failures_carry_status(session, status):
    client = GoogleDirectionsClient('test-key', session=session)
    with pytest.raises(DirectionsError) as exc:
        client.get_path(A, B)
    assert exc.value.status == status


# ----- Route store client -----

def test_route_store_urls():
    session = FakeSession(FakeResponse(payload=['bago-aplaya', 'toril']))
    client = RouteStoreClient('https://example.supabase.co/', bucket='Jroute', session=session)

    assert client.fetch_index() == ['bago-aplaya', 'toril']
    client.fetch_geometry('toril')

    urls = [r[0] for r in session.requests]
    assert urls == [
        'https://example.supabase.co/storage/v1/object/public/Jroute/routes/index.json',
        'https://example.supabase.co/storage/v1/object/public/Jroute/routes/toril.geojson',
    ]


def test_route_store_requires_base_url():
    with pytest.raises(ConfigurationError):
        RouteStoreClient('')


@pytest.mark.parametrize("session", [
    FakeSession(error=requests.Timeout("slow")),
    FakeSession(FakeResponse(status_code=404)),
    FakeSession(FakeResponse(invalid_json=True)),
    FakeSession(FakeResponse(payload={'routes': []})),
])
def test_route_store_index_failures(session):
    client = RouteStoreClient('https://example.supabase.co', session=session)
    with pytest.raises(RouteStoreError):
        client.fetch_index()


def test_clients_close_their_sessions():
    store_session, directions_session = FakeSession(), FakeSession()
    RouteStoreClient('https://example.supabase.co', session=store_session).close()
    GoogleDirectionsClient('k', session=directions_session).close()
    assert store_session.closed and directions_session.closed
