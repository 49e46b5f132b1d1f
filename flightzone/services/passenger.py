"""
Passenger-facing flight lookup.

Combines the stored schedule (ScheduleStore) with the latest cached
position (PositionCache) for a flight number typed in by a passenger.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from flightzone.cache import PositionCache
from flightzone.enrichment.schedule import ScheduleRecord
from flightzone.enrichment.status import FlightStatus, resolve_schedule_status
from flightzone.ingestion.normalizer import NormalizedPosition
from flightzone.models.flight_schedule import ScheduleStore

logger = logging.getLogger(__name__)

# Flight numbers, callsigns and registrations (e.g. LH123, DLH400, D-AIDE)
FLIGHT_IDENT_RE = re.compile(r'^[A-Z0-9-]+$')


@dataclass(frozen=True)
class PassengerFlightInfo:
    """What a passenger display shows for one flight."""
    flight_number: str
    schedule: Optional[ScheduleRecord]
    position: Optional[NormalizedPosition]
    status: FlightStatus
    delay_minutes: int

    def to_dict(self) -> dict:
        schedule = self.schedule
        return {
            'flight_number': self.flight_number,
            'airline': schedule.airline_name if schedule else 'Unknown Airline',
            'airline_code': schedule.airline_code if schedule else None,
            'departure': schedule.departure.to_dict() if schedule else None,
            'arrival': schedule.arrival.to_dict() if schedule else None,
            'aircraft': schedule.aircraft.to_dict() if schedule else None,
            'status': self.status.value,
            'status_label': self.status.label,
            'delay_minutes': self.delay_minutes,
            'current_position': {
                'latitude': self.position.latitude,
                'longitude': self.position.longitude,
                'altitude_ft': self.position.altitude_ft,
            } if self.position else None,
        }


class PassengerService:
    """Flight lookup for passengers, built from the two stores."""

    def __init__(self, schedule_store: ScheduleStore, position_cache: PositionCache):
        self.schedule_store = schedule_store
        self.position_cache = position_cache

    def get_flight_info(self, flight_number: str) -> Optional[PassengerFlightInfo]:
        """
        Look up a flight by number (or registration).

        Returns None when neither the schedule store nor the position cache
        knows anything about it, or when the input is not a flight
        identifier (letters, digits and '-').
        """
        flight_number = flight_number.strip().upper()
        if not FLIGHT_IDENT_RE.match(flight_number):
            logger.debug(f'Rejected malformed flight number {flight_number!r}')
            return None

        schedule = self.schedule_store.find(flight_number)
        position = self.position_cache.lookup(flight_number)

        if schedule is None and position is None:
            logger.debug(f'No schedule or live data for {flight_number}')
            return None

        if schedule is not None:
            status = resolve_schedule_status(
                schedule,
                on_ground=position.on_ground if position else None,
            )
        else:
            status = FlightStatus.ON_GROUND if position.on_ground else FlightStatus.IN_FLIGHT

        return PassengerFlightInfo(
            flight_number=schedule.flight_number if schedule else flight_number,
            schedule=schedule,
            position=position,
            status=status,
            delay_minutes=schedule.delay_minutes if schedule else 0,
        )
