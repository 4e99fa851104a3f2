"""
Route Data Store client: route index and per-route GeoJSON from Supabase
public storage.
"""

import time
from typing import Any, List

import requests

from ..exceptions import ConfigurationError, RouteStoreError
from ..logger import logger


class RouteStoreClient:
    """Fetches ``routes/index.json`` and ``routes/<route_id>.geojson``"""

    def __init__(self, base_url: str, bucket: str = 'Jroute', timeout: float = 10.0,
                 session: requests.Session = None):
        if not base_url:
            raise ConfigurationError("Route store base URL (SUPABASE_URL) is not configured")
        self.base_url = base_url.rstrip('/')
        self.bucket = bucket
        self.timeout = timeout
        self.session = session or requests.Session()

    def _object_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    def _get_json(self, path: str) -> Any:
        url = self._object_url(path)
        started = time.time()
        success = False
        try:
            resp = self.session.get(url, timeout=self.timeout)
            if resp.status_code != 200:
                raise RouteStoreError(f"GET {path} failed with status {resp.status_code}")
            try:
                data = resp.json()
            except ValueError as e:
                raise RouteStoreError(f"GET {path} returned invalid JSON: {e}") from e
            success = True
            return data
        except requests.RequestException as e:
            raise RouteStoreError(f"GET {path} failed: {e}") from e
        finally:
            logger.log_api_call(f"route_store:{path}", (time.time() - started) * 1000, success)

    def fetch_index(self) -> List[str]:
        """Route identifiers, in store order"""
        data = self._get_json('routes/index.json')
        if not isinstance(data, list):
            raise RouteStoreError("Route index is not a JSON array")
        return [str(item) for item in data]

    def fetch_geometry(self, route_id: str) -> Any:
        """Raw GeoJSON document for one route"""
        return self._get_json(f"routes/{route_id}.geojson")

    def close(self):
        self.session.close()
