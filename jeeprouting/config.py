"""
Configuration management for the jeeprouting engine
"""

import os
from dataclasses import asdict, dataclass
from typing import Optional

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class RoutingThresholds:
    """Distance bounds (meters) used by the case ladder"""
    start_max_m: float = 1000.0
    reach_destination_m: float = 500.0
    walking_end_max_m: float = 500.0
    walking_residual_m: float = 10.0
    intersection_m: float = 100.0
    walking_gap_max_m: float = 500.0
    walking_gap_extended_m: float = 1000.0
    short_leg_m: float = 500.0
    relaxed_max_m: float = 3000.0
    relaxed_intersection_m: float = 200.0

    def validate(self):
        for name, value in asdict(self).items():
            if value <= 0:
                raise ConfigurationError(f"Threshold {name} must be positive, got {value}")
        if self.relaxed_max_m < self.start_max_m:
            raise ConfigurationError("Relaxed distance bound must not be tighter than the start bound")
        if self.relaxed_intersection_m < self.intersection_m:
            raise ConfigurationError("Relaxed intersection threshold must not be tighter than the strict one")
        if self.walking_gap_extended_m < self.walking_gap_max_m:
            raise ConfigurationError("Extended walking gap must not be smaller than the regular walking gap")


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


class Config:
    """Configuration class for the jeeprouting engine"""

    def __init__(self):
        # Route Data Store (Supabase public storage)
        self.supabase_url: str = os.getenv('SUPABASE_URL', '')
        self.supabase_bucket: str = os.getenv('SUPABASE_BUCKET', 'Jroute')

        # Directions provider
        self.google_maps_api_key: str = os.getenv('GOOGLE_MAPS_API_KEY', '')
        self.http_timeout: float = _env_float('HTTP_TIMEOUT', 10.0)

        # Case ladder thresholds (meters)
        self.start_max_m: float = _env_float('ROUTE_START_MAX_M', 1000.0)
        self.reach_destination_m: float = _env_float('ROUTE_REACH_DEST_M', 500.0)
        self.walking_end_max_m: float = _env_float('ROUTE_WALK_END_MAX_M', 500.0)
        self.walking_residual_m: float = _env_float('ROUTE_WALK_RESIDUAL_M', 10.0)
        self.intersection_m: float = _env_float('ROUTE_INTERSECTION_M', 100.0)
        self.walking_gap_max_m: float = _env_float('ROUTE_GAP_MAX_M', 500.0)
        self.walking_gap_extended_m: float = _env_float('ROUTE_GAP_EXTENDED_M', 1000.0)
        self.short_leg_m: float = _env_float('ROUTE_SHORT_LEG_M', 500.0)
        self.relaxed_max_m: float = _env_float('ROUTE_RELAXED_MAX_M', 3000.0)
        self.relaxed_intersection_m: float = _env_float('ROUTE_RELAXED_INTERSECTION_M', 200.0)

        # API configuration
        self.host: str = os.getenv('HOST', '0.0.0.0')
        self.port: int = int(os.getenv('PORT', '5000'))
        self.debug: bool = os.getenv('DEBUG', 'False').lower() == 'true'

        # Logging
        self.log_level: str = os.getenv('LOG_LEVEL', 'INFO')
        self.log_file: Optional[str] = os.getenv('LOG_FILE')

    def validate(self):
        """Validate configuration"""
        if not self.supabase_url:
            raise ConfigurationError("SUPABASE_URL is required")

        if not self.google_maps_api_key:
            raise ConfigurationError("GOOGLE_MAPS_API_KEY is required")

        if self.http_timeout <= 0:
            raise ConfigurationError("HTTP timeout must be positive")

        self.get_thresholds().validate()

    def get_thresholds(self) -> RoutingThresholds:
        """Get thresholds for RouteComposer"""
        return RoutingThresholds(
            start_max_m=self.start_max_m,
            reach_destination_m=self.reach_destination_m,
            walking_end_max_m=self.walking_end_max_m,
            walking_residual_m=self.walking_residual_m,
            intersection_m=self.intersection_m,
            walking_gap_max_m=self.walking_gap_max_m,
            walking_gap_extended_m=self.walking_gap_extended_m,
            short_leg_m=self.short_leg_m,
            relaxed_max_m=self.relaxed_max_m,
            relaxed_intersection_m=self.relaxed_intersection_m,
        )

    def get_route_store_config(self) -> dict:
        """Get configuration for RouteStoreClient"""
        return {
            'base_url': self.supabase_url,
            'bucket': self.supabase_bucket,
            'timeout': self.http_timeout
        }

    def get_directions_config(self) -> dict:
        """Get configuration for GoogleDirectionsClient"""
        return {
            'api_key': self.google_maps_api_key,
            'timeout': self.http_timeout
        }

    def get_api_config(self) -> dict:
        """Get configuration for Flask API"""
        return {
            'host': self.host,
            'port': self.port,
            'debug': self.debug
        }


# Global configuration instance
config = Config()
