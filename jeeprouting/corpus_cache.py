"""
Read-through cache over the Route Data Store.

The route index and each route's parsed parts are filled once per key and
never mutated afterwards. Readers see either no entry or a complete one.
Concurrent misses on the same key may each hit the store; the first
complete value written wins. A fetch that started before the last
``invalidate`` is returned to its caller but not cached.
"""

import logging
import threading
from collections import OrderedDict
from typing import Dict, Optional, Tuple

from .exceptions import RouteStoreError
from .models.route_segments import Polyline
from .utils.geojson_utils import parse_route_geometry

RouteCorpus = Dict[str, Tuple[Polyline, ...]]


class RouteCorpusCache:
    """Memoizes the route index and per-route polylines"""

    def __init__(self, store):
        self.store = store
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._index: Optional[Tuple[str, ...]] = None
        self._parts: Dict[str, Tuple[Polyline, ...]] = {}
        self._generation = 0

    def load_index(self) -> Tuple[str, ...]:
        """Cached route identifiers; empty on store failure (never raises)"""
        cached = self._index
        if cached is not None:
            self.logger.debug(f"Index cache hit ({len(cached)} routes)")
            return cached

        generation = self._generation
        try:
            fetched = tuple(self.store.fetch_index())
        except RouteStoreError as e:
            self.logger.warning(f"Failed to load route index: {e}")
            return ()

        with self._lock:
            if generation != self._generation:
                self.logger.debug("Index fetched across an invalidate; not caching it")
                return fetched
            if self._index is None:
                self._index = fetched
            cached = self._index
        self.logger.info(f"Loaded {len(cached)} routes into index")
        return cached

    def load_parts(self, route_id: str) -> Tuple[Polyline, ...]:
        """Cached polylines for one route; empty on store failure (never raises)"""
        cached = self._parts.get(route_id)
        if cached is not None:
            return cached

        generation = self._generation
        try:
            document = self.store.fetch_geometry(route_id)
        except RouteStoreError as e:
            self.logger.warning(f"Failed to load route {route_id}: {e}")
            return ()

        parts = tuple(parse_route_geometry(route_id, document))
        with self._lock:
            if generation != self._generation:
                return parts
            cached = self._parts.setdefault(route_id, parts)
        self.logger.debug(f"Loaded {len(cached)} parts for {route_id}")
        return cached

    def load_corpus(self) -> RouteCorpus:
        """Every indexed route with at least one part, in index order"""
        corpus: RouteCorpus = OrderedDict()
        for route_id in self.load_index():
            parts = self.load_parts(route_id)
            if parts:
                corpus[route_id] = parts
        return corpus

    def invalidate(self):
        """Drop both caches so the next load goes back to the store"""
        with self._lock:
            self._index = None
            self._parts = {}
            self._generation += 1
        self.logger.info("Route corpus cache cleared")

    @property
    def cached_route_count(self) -> int:
        return len(self._parts)
