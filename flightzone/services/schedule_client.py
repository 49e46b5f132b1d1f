"""
Schedule feed client - departures for the reference airport.

Queries AviationStack /flights by departure IATA code. Both transport
errors and an in-payload 'error' object count as failure; failures and
empty results fall back to demo schedules when demo mode is allowed.
"""

import logging
import time
from typing import List, Optional

import requests

from flightzone.config import AviationStackConfig
from flightzone.enrichment.schedule import ScheduleRecord, parse_schedules
from flightzone.services.sample_data import sample_schedules

logger = logging.getLogger(__name__)


class ScheduleFeedError(Exception):
    """The schedule source answered with an error payload."""


class ScheduleClient:
    """
    Client for the AviationStack flights endpoint.

    Usage:
        client = ScheduleClient(api_key='...')
        schedules = client.get_departures('FRA')
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = 'http://api.aviationstack.com/v1',
        timeout: float = 10.0,
        limit: int = 100,
        demo_fallback: bool = True,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.limit = limit
        self.demo_fallback = demo_fallback
        self.session = session or requests.Session()

        self._requests_made = 0
        self._last_request_time: float = 0

        if not self.api_key:
            logger.warning('AviationStack API key not configured - schedule lookups disabled')

    @classmethod
    def from_config(
        cls,
        aviationstack: AviationStackConfig,
        demo_fallback: bool = True,
    ) -> 'ScheduleClient':
        return cls(
            api_key=aviationstack.api_key,
            base_url=aviationstack.base_url,
            timeout=aviationstack.timeout_seconds,
            limit=aviationstack.limit,
            demo_fallback=demo_fallback,
        )

    def fetch_departures(self, iata_code: str) -> List[ScheduleRecord]:
        """
        Fetch departures without any fallback.

        Raises:
            requests.RequestException on transport/HTTP errors
            ScheduleFeedError when the payload carries an 'error' object
        """
        params = {
            'access_key': self.api_key,
            'dep_iata': iata_code,
            'limit': self.limit,
        }

        logger.info(f'Fetching AviationStack departures for {iata_code}')
        response = self.session.get(
            f'{self.base_url}/flights',
            params=params,
            timeout=self.timeout,
        )
        self._last_request_time = time.time()
        self._requests_made += 1
        response.raise_for_status()

        try:
            data = response.json()
        except ValueError:
            logger.warning('AviationStack returned a non-JSON body')
            return []

        if isinstance(data, dict) and data.get('error'):
            raise ScheduleFeedError(str(data['error']))

        return parse_schedules(data)

    def get_departures(self, iata_code: str) -> List[ScheduleRecord]:
        """
        Departures for an airport, degrading instead of raising.

        Returns demo schedules (or [] with demo fallback disabled) when
        the key is missing, the request fails, or nothing comes back.
        """
        if not self.api_key:
            return self._fallback('no API key')

        try:
            schedules = self.fetch_departures(iata_code)
        except requests.RequestException as e:
            logger.error(f'AviationStack request failed: {e}')
            return self._fallback('request failed')
        except ScheduleFeedError as e:
            logger.error(f'AviationStack error: {e}')
            return self._fallback('error payload')

        if not schedules:
            return self._fallback(f'no flights for {iata_code}')

        logger.info(f'Fetched {len(schedules)} schedules from AviationStack')
        return schedules

    def _fallback(self, reason: str) -> List[ScheduleRecord]:
        if not self.demo_fallback:
            logger.warning(f'Schedule feed unavailable ({reason}), no schedules this cycle')
            return []
        logger.warning(f'Schedule feed unavailable ({reason}), using sample schedules')
        return sample_schedules()

    @property
    def stats(self) -> dict:
        """Get client statistics."""
        return {
            'requests_made': self._requests_made,
            'api_configured': bool(self.api_key),
            'demo_fallback': self.demo_fallback,
            'last_request_time': self._last_request_time,
        }
