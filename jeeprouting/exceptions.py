"""
Custom exceptions for the jeeprouting engine
"""


class JeepRoutingError(Exception):
    """Base exception for the jeeprouting engine"""
    pass


class ConfigurationError(JeepRoutingError):
    """Raised when a required setting (credential, base URL) is missing or invalid"""
    pass


class RouteStoreError(JeepRoutingError):
    """Raised when the route index or a route geometry cannot be fetched or decoded"""
    pass


class DirectionsError(JeepRoutingError):
    """Raised when the directions provider fails or returns no usable path"""

    def __init__(self, message: str, status: str = 'UNKNOWN_ERROR'):
        super().__init__(message)
        self.status = status


class MalformedGeometryError(JeepRoutingError):
    """Raised when a single GeoJSON feature cannot be turned into polylines"""
    pass


class RouteNotFoundError(JeepRoutingError):
    """Raised when no route, not even the driving fallback, could be produced"""

    def __init__(self, message: str, reason=None):
        super().__init__(message)
        self.reason = reason


class InvalidCoordinatesError(JeepRoutingError):
    """Raised when coordinates are invalid or out of bounds"""
    pass
