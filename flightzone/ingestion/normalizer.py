"""
Telemetry normalization and deduplication.

The normalizer is total: any decoded state vector becomes a
NormalizedPosition, with absent or malformed fields replaced by
defaults. Sparse feeds are the norm, so nothing here raises.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

from flightzone.ingestion.opensky_client import StateVector

logger = logging.getLogger(__name__)

METERS_TO_FEET = 3.28084
MPS_TO_KNOTS = 1.94384

UNKNOWN_CALLSIGN = 'UNKNOWN'


@dataclass(frozen=True)
class NormalizedPosition:
    """
    One aircraft position in display units.

    altitude_ft and velocity_kts are always finite and >= 0; latitude is
    within [-90, 90] and longitude within [-180, 180].
    """
    callsign: str
    origin_country: Optional[str]
    longitude: float
    latitude: float
    altitude_ft: float
    velocity_kts: float
    heading: float
    vertical_rate: float
    on_ground: bool
    observed_at: datetime
    last_contact: Optional[int] = None

    def to_cache_fields(self) -> dict:
        """Scalar attributes stringified for the position cache hash."""
        return {
            'callsign': self.callsign,
            'origin_country': self.origin_country or '',
            'latitude': str(self.latitude),
            'longitude': str(self.longitude),
            'altitude': str(self.altitude_ft),
            'velocity': str(self.velocity_kts),
            'heading': str(self.heading),
            'vertical_rate': str(self.vertical_rate),
            'on_ground': 'true' if self.on_ground else 'false',
            'last_contact': '' if self.last_contact is None else str(self.last_contact),
            'last_update': self.observed_at.isoformat(),
        }

    def to_dict(self) -> dict:
        return {
            'callsign': self.callsign,
            'origin_country': self.origin_country,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'altitude_ft': round(self.altitude_ft),
            'velocity_kts': round(self.velocity_kts),
            'heading': self.heading,
            'vertical_rate': self.vertical_rate,
            'on_ground': self.on_ground,
            'observed_at': self.observed_at.isoformat(),
        }


def _finite(value: Any, default: float = 0.0) -> float:
    """Coerce to a finite float, or return the default."""
    if isinstance(value, bool) or value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return number


def _callsign(value: Any) -> str:
    if not isinstance(value, str):
        return UNKNOWN_CALLSIGN
    return value.strip().upper() or UNKNOWN_CALLSIGN


def _observed_at(last_contact: Any, now: datetime) -> datetime:
    seconds = _finite(last_contact, default=-1.0)
    if seconds < 0:
        return now
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return now


def normalize_state(sv: StateVector, now: Optional[datetime] = None) -> NormalizedPosition:
    """
    Convert one decoded state vector to a NormalizedPosition.

    - altitude: meters -> feet, missing/negative -> 0
    - velocity: m/s -> knots, missing/negative -> 0
    - heading, vertical rate: missing -> 0
    - on_ground: missing -> False
    - callsign: trimmed, uppercased, missing -> 'UNKNOWN'
    - coordinates: clamped into valid ranges, missing -> 0
    """
    now = now or datetime.now(timezone.utc)

    latitude = max(-90.0, min(90.0, _finite(sv.latitude)))
    longitude = max(-180.0, min(180.0, _finite(sv.longitude)))

    last_contact = None
    if isinstance(sv.last_contact, int) and not isinstance(sv.last_contact, bool):
        last_contact = sv.last_contact

    return NormalizedPosition(
        callsign=_callsign(sv.callsign),
        origin_country=sv.origin_country if isinstance(sv.origin_country, str) else None,
        longitude=longitude,
        latitude=latitude,
        altitude_ft=max(0.0, _finite(sv.baro_altitude) * METERS_TO_FEET),
        velocity_kts=max(0.0, _finite(sv.velocity) * MPS_TO_KNOTS),
        heading=_finite(sv.true_track),
        vertical_rate=_finite(sv.vertical_rate),
        on_ground=sv.on_ground is True or sv.on_ground == 1,
        observed_at=_observed_at(sv.last_contact, now),
        last_contact=last_contact,
    )


def normalize_states(
    states: Iterable[StateVector],
    now: Optional[datetime] = None,
) -> List[NormalizedPosition]:
    """Normalize a batch using a single shared fallback timestamp."""
    now = now or datetime.now(timezone.utc)
    return [normalize_state(sv, now) for sv in states]


def fingerprint(position: NormalizedPosition) -> str:
    """
    Identity + position rounded to 3 decimals (~110 m).

    Adding 0.0 folds -0.0 into 0.0 so both sides of the equator/meridian
    round to the same key.
    """
    lat = round(position.latitude, 3) + 0.0
    lon = round(position.longitude, 3) + 0.0
    return f'{position.callsign}_{lat:.3f}_{lon:.3f}'


def dedupe(positions: Iterable[NormalizedPosition]) -> List[NormalizedPosition]:
    """
    Drop near-identical observations.

    The first occurrence of each fingerprint wins; input order is
    otherwise preserved, so dedupe(dedupe(x)) == dedupe(x).
    """
    seen = set()
    unique = []
    for position in positions:
        key = fingerprint(position)
        if key in seen:
            continue
        seen.add(key)
        unique.append(position)
    return unique
