"""
Geodesic helpers and bounding-box tiling.

Distances use the Haversine formula on a spherical Earth (R = 6371 km).
That is accurate to ~0.5% which is plenty for zone filtering around an
airport.

Large search radii are decomposed into several bounding boxes because
the telemetry API rejects (or silently truncates) oversized boxes. Tiles
overlap by a fixed margin so aircraft sitting on a seam are returned by
at least one tile; the resulting duplicates are removed later by the
deduplicator.
"""

import math
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE_LAT = 111.32

# Floor for cos(latitude) so boxes near the poles don't divide by zero
_MIN_COS_LAT = 1e-6


def haversine_distance(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """
    Calculate great-circle distance between two points in kilometers.

    Symmetric in its two points and exactly 0.0 for identical points.
    NaN coordinates propagate as NaN.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) *
        math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def haversine_distances(
    lat: float, lon: float,
    lats: Sequence[float], lons: Sequence[float],
) -> np.ndarray:
    """
    Vectorized haversine from one reference point to many points.

    Used for filtering the global feed, where a cycle can carry 10k+
    state vectors.
    """
    lats_rad = np.radians(np.asarray(lats, dtype=float))
    lons_rad = np.radians(np.asarray(lons, dtype=float))
    lat_rad = math.radians(lat)
    lon_rad = math.radians(lon)

    a = (
        np.sin((lats_rad - lat_rad) / 2) ** 2 +
        math.cos(lat_rad) * np.cos(lats_rad) *
        np.sin((lons_rad - lon_rad) / 2) ** 2
    )
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def km_to_lat_degrees(km: float) -> float:
    """Convert a north-south distance to degrees of latitude."""
    return km / KM_PER_DEGREE_LAT


def km_to_lon_degrees(km: float, at_latitude: float) -> float:
    """Convert an east-west distance to degrees of longitude at a latitude."""
    cos_lat = max(abs(math.cos(math.radians(at_latitude))), _MIN_COS_LAT)
    return km / (KM_PER_DEGREE_LAT * cos_lat)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class BoundingBox:
    """
    Geographic bounding box for API queries.

    OpenSky expects: lamin, lomin, lamax, lomax
    (latitude min, longitude min, latitude max, longitude max)

    Always clamped to valid coordinate ranges, with min <= max.
    """
    lat_min: float
    lon_min: float
    lat_max: float
    lon_max: float

    @classmethod
    def clamped(
        cls,
        lat_min: float,
        lon_min: float,
        lat_max: float,
        lon_max: float,
    ) -> 'BoundingBox':
        """Build a box with every edge clamped into [-90, 90] / [-180, 180]."""
        lat_lo = _clamp(min(lat_min, lat_max), -90.0, 90.0)
        lat_hi = _clamp(max(lat_min, lat_max), -90.0, 90.0)
        lon_lo = _clamp(min(lon_min, lon_max), -180.0, 180.0)
        lon_hi = _clamp(max(lon_min, lon_max), -180.0, 180.0)
        return cls(lat_min=lat_lo, lon_min=lon_lo, lat_max=lat_hi, lon_max=lon_hi)

    @classmethod
    def from_center_radius(
        cls,
        center_lat: float,
        center_lon: float,
        radius_km: float,
    ) -> 'BoundingBox':
        """
        Create bounding box from center point and radius.

        1 degree of latitude is ~111.32 km; longitude degrees shrink with
        cos(latitude).
        """
        lat_delta = km_to_lat_degrees(radius_km)
        lon_delta = km_to_lon_degrees(radius_km, center_lat)

        return cls.clamped(
            lat_min=center_lat - lat_delta,
            lon_min=center_lon - lon_delta,
            lat_max=center_lat + lat_delta,
            lon_max=center_lon + lon_delta,
        )

    def contains(self, lat: float, lon: float) -> bool:
        return self.lat_min <= lat <= self.lat_max and self.lon_min <= lon <= self.lon_max

    def to_params(self) -> dict:
        """Convert to OpenSky API query parameters."""
        return {
            'lamin': self.lat_min,
            'lomin': self.lon_min,
            'lamax': self.lat_max,
            'lomax': self.lon_max,
        }


class ZoneTiler:
    """
    Splits a circular zone into API-sized bounding boxes.

    A radius up to ``max_tile_size_km`` yields one box. Larger radii yield
    an n x n grid (n = ceil(radius / max_tile_size_km)) of tiles with a
    half-size of ``max_tile_size_km / 2``, spaced ``max_tile_size_km -
    overlap_km`` apart so neighbours share an ``overlap_km`` strip.
    """

    def __init__(self, max_tile_size_km: float = 500.0, overlap_km: float = 50.0):
        if max_tile_size_km <= 0:
            raise ValueError('max_tile_size_km must be positive')
        if not 0 <= overlap_km < max_tile_size_km:
            raise ValueError('overlap_km must be in [0, max_tile_size_km)')
        self.max_tile_size_km = max_tile_size_km
        self.overlap_km = overlap_km

    @classmethod
    def from_config(cls, tiling) -> 'ZoneTiler':
        return cls(
            max_tile_size_km=tiling.max_tile_size_km,
            overlap_km=tiling.overlap_km,
        )

    def tile(
        self,
        center_lat: float,
        center_lon: float,
        radius_km: float,
    ) -> List[BoundingBox]:
        """Return the bounding boxes covering the zone around a center point."""
        if radius_km <= self.max_tile_size_km:
            return [BoundingBox.from_center_radius(center_lat, center_lon, radius_km)]

        n = math.ceil(radius_km / self.max_tile_size_km)
        step_km = self.max_tile_size_km - self.overlap_km
        half_km = self.max_tile_size_km / 2

        # Offsets are converted at the zone center's latitude so every tile
        # uses the same degree scale and the overlap stays uniform
        half_lat = km_to_lat_degrees(half_km)
        half_lon = km_to_lon_degrees(half_km, center_lat)

        boxes = []
        for i in range(n):
            lat_offset_km = (i - (n - 1) / 2) * step_km
            tile_lat = center_lat + km_to_lat_degrees(lat_offset_km)
            for j in range(n):
                lon_offset_km = (j - (n - 1) / 2) * step_km
                tile_lon = center_lon + km_to_lon_degrees(lon_offset_km, center_lat)
                boxes.append(BoundingBox.clamped(
                    lat_min=tile_lat - half_lat,
                    lon_min=tile_lon - half_lon,
                    lat_max=tile_lat + half_lat,
                    lon_max=tile_lon + half_lon,
                ))

        return boxes
