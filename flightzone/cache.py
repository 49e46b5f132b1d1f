"""
Redis-backed cache of live aircraft positions.

One hash per callsign under ``aircraft:{callsign}:position`` holding the
position's scalar fields as strings. Every write resets a short expiry
(300 s by default), so a missing key simply means the aircraft has not
been seen recently - it is never treated as an error.
"""

import logging
import re
from datetime import datetime
from typing import Iterable, Optional

import redis

from flightzone.config import RedisConfig
from flightzone.enrichment.schedule import parse_datetime
from flightzone.ingestion.normalizer import NormalizedPosition

logger = logging.getLogger(__name__)

KEY_PATTERN = 'aircraft:{callsign}:position'


def position_key(callsign: str) -> str:
    return KEY_PATTERN.format(callsign=callsign)


def escape_glob(text: str) -> str:
    """Escape Redis glob metacharacters so text matches literally in SCAN MATCH."""
    return re.sub(r'([*?\[\]\\])', r'\\\1', text)


def _float(value: Optional[str]) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def position_from_hash(data: dict) -> Optional[NormalizedPosition]:
    """Rebuild a NormalizedPosition from a cached hash; None for an empty hash."""
    if not data:
        return None

    observed_at = parse_datetime(data.get('last_update'))
    last_contact = data.get('last_contact')
    return NormalizedPosition(
        callsign=data.get('callsign', ''),
        origin_country=data.get('origin_country') or None,
        longitude=_float(data.get('longitude')),
        latitude=_float(data.get('latitude')),
        altitude_ft=_float(data.get('altitude')),
        velocity_kts=_float(data.get('velocity')),
        heading=_float(data.get('heading')),
        vertical_rate=_float(data.get('vertical_rate')),
        on_ground=data.get('on_ground') == 'true',
        observed_at=observed_at or datetime.min,
        last_contact=int(last_contact) if last_contact and last_contact.isdigit() else None,
    )


class PositionCache:
    """
    Latest-position store keyed by callsign.

    The Redis client is injected so tests and alternative deployments can
    supply their own; ``from_config`` builds one from REDIS_URL.
    """

    def __init__(self, client: 'redis.Redis', ttl_seconds: int = 300):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_config(cls, redis_config: RedisConfig) -> 'PositionCache':
        client = redis.Redis.from_url(redis_config.url, decode_responses=True)
        return cls(client, ttl_seconds=redis_config.position_ttl_seconds)

    def store_positions(self, positions: Iterable[NormalizedPosition]) -> int:
        """
        Write positions and refresh their expiry.

        Returns the number of positions written. Redis errors propagate;
        the pipeline decides whether they matter.
        """
        pipe = self.client.pipeline()
        count = 0
        for position in positions:
            key = position_key(position.callsign)
            pipe.hset(key, mapping=position.to_cache_fields())
            pipe.expire(key, self.ttl_seconds)
            count += 1

        if count:
            pipe.execute()
        logger.debug(f'Cached {count} positions (ttl={self.ttl_seconds}s)')
        return count

    def get_position(self, callsign: str) -> Optional[NormalizedPosition]:
        """Latest cached position, or None when the key is absent/expired."""
        data = self.client.hgetall(position_key(callsign.strip().upper()))
        return position_from_hash(data)

    def find_position(self, prefix: str) -> Optional[NormalizedPosition]:
        """
        First cached position whose callsign starts with prefix.

        Falls back to the exact key when the pattern scan finds nothing.
        """
        prefix = prefix.strip().upper()
        if not prefix:
            return None
        pattern = position_key(f'{escape_glob(prefix)}*')
        for key in self.client.scan_iter(match=pattern):
            position = position_from_hash(self.client.hgetall(key))
            if position is not None:
                return position
        return self.get_position(prefix)

    def lookup(self, callsign: str) -> Optional[NormalizedPosition]:
        """find_position that reports an unreachable cache as 'no live data'."""
        try:
            return self.find_position(callsign)
        except redis.RedisError as e:
            logger.warning(f'Position cache unavailable: {e}')
            return None
