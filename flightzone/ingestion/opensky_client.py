"""
OpenSky Network API client (telemetry feed).

Handles communication with the OpenSky REST API, including:
- Optional authentication with a one-shot anonymous retry
- Global or bounding-box (tiled) state queries
- Decoding the positional state arrays into named fields

OpenSky state vector format (array indices):
0: icao24          - ICAO24 hex address
1: callsign        - Callsign (8 chars max, space padded)
2: origin_country  - Country of registration
3: time_position   - Unix timestamp of last position update
4: last_contact    - Unix timestamp of last message
5: longitude       - WGS84 longitude
6: latitude        - WGS84 latitude
7: baro_altitude   - Barometric altitude (meters)
8: on_ground       - Boolean
9: velocity        - Ground speed (m/s)
10: true_track     - Track angle (degrees, 0=north)
11: vertical_rate  - Vertical rate (m/s)
12+: sensors, geo_altitude, squawk, spi, position_source (unused here)
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional, List, Tuple, Any

import requests
from requests.auth import HTTPBasicAuth

from flightzone.config import OpenSkyConfig
from flightzone.ingestion.geo import BoundingBox, ZoneTiler

logger = logging.getLogger(__name__)

# Offsets into a raw state array
IDX_ICAO24 = 0
IDX_CALLSIGN = 1
IDX_ORIGIN_COUNTRY = 2
IDX_LAST_CONTACT = 4
IDX_LONGITUDE = 5
IDX_LATITUDE = 6
IDX_BARO_ALTITUDE = 7
IDX_ON_GROUND = 8
IDX_VELOCITY = 9
IDX_TRUE_TRACK = 10
IDX_VERTICAL_RATE = 11

_MIN_STATE_LENGTH = IDX_VERTICAL_RATE + 1


@dataclass(frozen=True)
class StateVector:
    """
    Decoded state vector from OpenSky, still in source units.

    Values are passed through as received; unit conversion and
    defaulting happen once, in the normalizer.
    """
    icao24: Optional[str]
    callsign: Any
    origin_country: Any
    last_contact: Any
    longitude: Any
    latitude: Any
    baro_altitude: Any
    on_ground: Any
    velocity: Any
    true_track: Any
    vertical_rate: Any

    @classmethod
    def from_array(cls, arr: Any) -> Optional['StateVector']:
        """
        Decode one OpenSky state array.

        Returns None for null entries and arrays too short to carry the
        fields we read.
        """
        if not isinstance(arr, (list, tuple)) or len(arr) < _MIN_STATE_LENGTH:
            return None

        icao24 = arr[IDX_ICAO24]
        return cls(
            icao24=icao24.lower() if isinstance(icao24, str) else None,
            callsign=arr[IDX_CALLSIGN],
            origin_country=arr[IDX_ORIGIN_COUNTRY],
            last_contact=arr[IDX_LAST_CONTACT],
            longitude=arr[IDX_LONGITUDE],
            latitude=arr[IDX_LATITUDE],
            baro_altitude=arr[IDX_BARO_ALTITUDE],
            on_ground=arr[IDX_ON_GROUND],
            velocity=arr[IDX_VELOCITY],
            true_track=arr[IDX_TRUE_TRACK],
            vertical_rate=arr[IDX_VERTICAL_RATE],
        )

    def has_position(self) -> bool:
        """Check if this state carries usable numeric coordinates."""
        return _is_number(self.latitude) and _is_number(self.longitude)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def parse_states(payload: Any) -> List[StateVector]:
    """
    Decode an OpenSky /states/all payload.

    Malformed payloads (not a dict, missing or non-list 'states') yield an
    empty list. Null entries are discarded.
    """
    if not isinstance(payload, dict):
        return []

    states_raw = payload.get('states')
    if not isinstance(states_raw, list):
        return []

    states = []
    for arr in states_raw:
        if arr is None:
            continue
        sv = StateVector.from_array(arr)
        if sv is not None:
            states.append(sv)
    return states


class OpenSkyClient:
    """
    Client for OpenSky Network API.

    Handles:
    - GET requests to /states/all endpoint
    - Optional authentication, falling back to anonymous access once
    - Global and tiled bounding box queries
    """

    def __init__(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        base_url: str = 'https://opensky-network.org/api',
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.auth = None
        if username and password:
            self.auth = HTTPBasicAuth(username, password)
            logger.info('OpenSky client initialized with authentication')
        else:
            logger.warning('OpenSky client running without authentication (lower rate limits)')

        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': 'FlightZone/1.0'})

    @classmethod
    def from_config(cls, opensky: OpenSkyConfig) -> 'OpenSkyClient':
        """Create client from application configuration."""
        return cls(
            username=opensky.username,
            password=opensky.password,
            base_url=opensky.base_url,
            timeout=opensky.timeout_seconds,
        )

    def _request(self, params: dict, auth: Optional[HTTPBasicAuth]) -> Any:
        """Single GET of /states/all. Raises requests exceptions on transport errors."""
        url = f'{self.base_url}/states/all'
        logger.debug(f'Fetching states: {url} params={params} auth={auth is not None}')

        try:
            response = self.session.get(
                url,
                params=params,
                auth=auth,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.Timeout:
            logger.error('OpenSky API timeout')
            raise
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status == 429:
                logger.warning('OpenSky rate limit exceeded')
            elif status in (401, 403):
                logger.warning(f'OpenSky rejected credentials ({status})')
            else:
                logger.error(f'OpenSky API error: {status}')
            raise
        except requests.exceptions.RequestException as e:
            logger.error(f'OpenSky request failed: {e}')
            raise

        try:
            return response.json()
        except ValueError as e:
            logger.warning(f'OpenSky returned a non-JSON body: {e}')
            return None

    def _fetch(self, params: dict) -> Any:
        """
        Two-step credential policy.

        Try with credentials (when configured); if that attempt fails, try
        once more anonymously. The anonymous attempt's error propagates.
        """
        if self.auth is not None:
            try:
                return self._request(params, auth=self.auth)
            except requests.exceptions.RequestException as e:
                logger.warning(f'Authenticated OpenSky request failed ({e}); retrying without credentials')
        return self._request(params, auth=None)

    def get_states(
        self,
        bbox: Optional[BoundingBox] = None,
    ) -> Tuple[int, List[StateVector]]:
        """
        Fetch current state vectors from OpenSky.

        Args:
            bbox: Optional bounding box to filter by geography

        Returns:
            Tuple of (api_timestamp, list of StateVectors)

        Raises:
            requests.RequestException when both attempts fail
        """
        params = bbox.to_params() if bbox else {}
        data = self._fetch(params)

        api_time = int(time.time())
        if isinstance(data, dict) and isinstance(data.get('time'), int):
            api_time = data['time']

        states = parse_states(data)
        logger.info(f'Received {len(states)} state vectors from OpenSky')
        return api_time, states

    def get_states_in_zone(
        self,
        center_lat: float,
        center_lon: float,
        radius_km: float,
        tiler: ZoneTiler,
    ) -> Tuple[int, List[StateVector]]:
        """
        Fetch states tile by tile for a zone.

        Results are concatenated in tile order; aircraft in tile overlaps
        appear more than once and must be deduplicated downstream. A failed
        tile is skipped unless every tile fails.
        """
        boxes = tiler.tile(center_lat, center_lon, radius_km)
        api_time = int(time.time())
        states: List[StateVector] = []
        failures = 0
        last_error: Optional[Exception] = None

        for bbox in boxes:
            try:
                tile_time, tile_states = self.get_states(bbox=bbox)
            except requests.exceptions.RequestException as e:
                failures += 1
                last_error = e
                continue
            api_time = tile_time
            states.extend(tile_states)

        if boxes and failures == len(boxes) and last_error is not None:
            raise last_error

        logger.debug(f'Fetched {len(states)} states across {len(boxes)} tiles ({failures} failed)')
        return api_time, states
