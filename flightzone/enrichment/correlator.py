"""
Correlation of live telemetry with schedule records.

Matching policy, first hit wins:

1. Exact: callsign == flight number.
2. Fallback, scanning schedules in feed order: the flight number contains
   the callsign's first two characters, OR the aircraft registration
   equals the callsign.
3. Otherwise a placeholder schedule is synthesized, so consumers never
   see a missing schedule.

Tier 2 is deliberately loose: 'DLH400' (Lufthansa ICAO) shares 'DL' with
Delta's 'DL456' and will match it if no exact match exists. Callers rely
on this ordering being stable, so it is kept as is.
"""

import logging
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from flightzone.enrichment.schedule import AircraftDetails, FlightEndpoint, ScheduleRecord
from flightzone.ingestion.normalizer import NormalizedPosition

logger = logging.getLogger(__name__)

UNKNOWN_AIRLINE = 'Unknown Airline'
UNKNOWN_AIRPORT = 'Unknown Airport'
NOT_AVAILABLE = 'N/A'
PLACEHOLDER_STATUS = 'in-flight'


class MatchTier(str, Enum):
    """How a schedule was associated with a callsign."""
    EXACT = 'exact'
    FALLBACK = 'fallback'
    SYNTHESIZED = 'synthesized'


class ScheduleIndex:
    """
    Read-only lookup over one cycle's schedule list.

    Built fresh from each fetch and never mutated afterwards. Keeps feed
    order for the fallback scan; duplicate flight numbers resolve to the
    first record seen.
    """

    def __init__(self, schedules: Iterable[ScheduleRecord]):
        self._records: Tuple[ScheduleRecord, ...] = tuple(schedules)
        by_number: Dict[str, ScheduleRecord] = {}
        for record in self._records:
            by_number.setdefault(record.flight_number, record)
        self._by_number = by_number

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def get(self, flight_number: str) -> Optional[ScheduleRecord]:
        return self._by_number.get(flight_number)


def placeholder_schedule(callsign: str) -> ScheduleRecord:
    """Schedule stand-in for a callsign nobody has a timetable for."""
    endpoint = FlightEndpoint(
        airport=UNKNOWN_AIRPORT,
        iata=NOT_AVAILABLE,
        terminal=NOT_AVAILABLE,
        gate=NOT_AVAILABLE,
    )
    return ScheduleRecord(
        flight_number=callsign,
        airline_name=UNKNOWN_AIRLINE,
        airline_code=None,
        departure=endpoint,
        arrival=endpoint,
        status=PLACEHOLDER_STATUS,
        aircraft=AircraftDetails(registration=callsign),
        synthesized=True,
    )


class Correlator:
    """Matches live positions to schedules using the tiered policy above."""

    def find(
        self,
        callsign: str,
        index: ScheduleIndex,
    ) -> Tuple[Optional[ScheduleRecord], MatchTier]:
        """Look up a real schedule; returns (None, SYNTHESIZED) on a miss."""
        exact = index.get(callsign)
        if exact is not None:
            return exact, MatchTier.EXACT

        prefix = callsign[:2]
        for record in index:
            if prefix in record.flight_number or record.aircraft.registration == callsign:
                return record, MatchTier.FALLBACK

        return None, MatchTier.SYNTHESIZED

    def match_callsign(self, callsign: str, index: ScheduleIndex) -> ScheduleRecord:
        record, tier = self.find(callsign, index)
        if record is None:
            logger.debug(f'No schedule for {callsign}, synthesizing placeholder')
            return placeholder_schedule(callsign)
        if tier is MatchTier.FALLBACK:
            logger.debug(f'{callsign} matched {record.flight_number} by fallback heuristic')
        return record

    def match(self, position: NormalizedPosition, index: ScheduleIndex) -> ScheduleRecord:
        """Schedule for a live position; never None."""
        return self.match_callsign(position.callsign, index)
