"""
Configuration management for FlightZone.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic strings scattered
throughout the codebase.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


def _parse_bool(value: str, default: bool = False) -> bool:
    """Parse a truthy env string ('1', 'true', 'yes', 'on')."""
    if not value:
        return default
    return value.strip().lower() in {'1', 'true', 'yes', 'on'}


@dataclass(frozen=True)
class OpenSkyConfig:
    """Telemetry feed (OpenSky) configuration."""
    username: Optional[str] = os.getenv('OPENSKY_USERNAME') or None
    password: Optional[str] = os.getenv('OPENSKY_PASSWORD') or None
    base_url: str = os.getenv('OPENSKY_BASE_URL', 'https://opensky-network.org/api')
    timeout_seconds: float = float(os.getenv('OPENSKY_TIMEOUT_SECONDS', '30'))

    # 'global' fetches every state in one request, 'tiled' issues one
    # bounding-box request per zone tile
    query_mode: str = os.getenv('TELEMETRY_QUERY_MODE', 'global').lower()


@dataclass(frozen=True)
class AviationStackConfig:
    """Schedule feed (AviationStack) configuration."""
    api_key: Optional[str] = os.getenv('AVIATIONSTACK_API_KEY') or None
    base_url: str = os.getenv('AVIATIONSTACK_BASE_URL', 'http://api.aviationstack.com/v1')
    timeout_seconds: float = 10.0
    limit: int = int(os.getenv('SCHEDULE_LIMIT', '100'))


@dataclass(frozen=True)
class AirportConfig:
    """Reference airport and its monitoring zone."""
    icao: str = os.getenv('AIRPORT_ICAO', 'EDDF').upper()
    latitude: float = float(os.getenv('AIRPORT_LATITUDE', '50.0379'))
    longitude: float = float(os.getenv('AIRPORT_LONGITUDE', '8.5622'))
    zone_radius_km: float = float(os.getenv('AIRPORT_ZONE_RADIUS_KM', '50'))

    @property
    def location(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(frozen=True)
class TilingConfig:
    """Bounding-box tiling policy for large-radius telemetry queries."""
    max_tile_size_km: float = 500.0
    overlap_km: float = 50.0


@dataclass(frozen=True)
class IngestionConfig:
    """Refresh cycle settings."""
    refresh_interval: int = int(os.getenv('FLIGHT_DATA_REFRESH_INTERVAL', '10'))
    bounded_view: bool = _parse_bool(os.getenv('BOUNDED_VIEW', ''), default=True)
    demo_fallback: bool = _parse_bool(os.getenv('DEMO_FALLBACK', ''), default=True)


@dataclass(frozen=True)
class RedisConfig:
    """Position cache settings."""
    url: str = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    position_ttl_seconds: int = int(os.getenv('POSITION_TTL_SECONDS', '300'))


@dataclass(frozen=True)
class DatabaseConfig:
    """Schedule store configuration."""
    url: str = os.getenv('DATABASE_URL', 'sqlite:///flightzone.db')


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    opensky: OpenSkyConfig
    aviationstack: AviationStackConfig
    airport: AirportConfig
    tiling: TilingConfig
    ingestion: IngestionConfig
    redis: RedisConfig
    database: DatabaseConfig

    # Flask settings
    secret_key: str
    debug: bool


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        opensky=OpenSkyConfig(),
        aviationstack=AviationStackConfig(),
        airport=AirportConfig(),
        tiling=TilingConfig(),
        ingestion=IngestionConfig(),
        redis=RedisConfig(),
        database=DatabaseConfig(),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
    )


# Read-only settings shared by the factories below
config = load_config()
