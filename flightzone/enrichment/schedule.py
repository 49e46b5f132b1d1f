"""
Schedule records - the timetable side of correlation.

Records are parsed from AviationStack-shaped payloads. Identity is the
flight number; the aircraft registration is a weaker secondary key.
Neither is reliable, which is why matching is heuristic.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlightEndpoint:
    """Departure or arrival leg of a schedule."""
    airport: Optional[str] = None
    iata: Optional[str] = None
    scheduled: Optional[str] = None
    estimated: Optional[str] = None
    actual: Optional[str] = None
    terminal: Optional[str] = None
    gate: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> 'FlightEndpoint':
        if not isinstance(data, dict):
            return cls()
        return cls(
            airport=data.get('airport'),
            iata=data.get('iata'),
            scheduled=data.get('scheduled'),
            estimated=data.get('estimated'),
            actual=data.get('actual'),
            terminal=data.get('terminal'),
            gate=data.get('gate'),
        )

    def to_dict(self) -> dict:
        return {
            'airport': self.airport,
            'iata': self.iata,
            'scheduled': self.scheduled,
            'estimated': self.estimated,
            'actual': self.actual,
            'terminal': self.terminal,
            'gate': self.gate,
        }


@dataclass(frozen=True)
class AircraftDetails:
    registration: Optional[str] = None
    iata: Optional[str] = None
    icao: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> 'AircraftDetails':
        if not isinstance(data, dict):
            return cls()
        return cls(
            registration=data.get('registration'),
            iata=data.get('iata'),
            icao=data.get('icao'),
        )

    def to_dict(self) -> dict:
        return {'registration': self.registration, 'iata': self.iata, 'icao': self.icao}


@dataclass(frozen=True)
class ScheduleRecord:
    """
    One timetable entry.

    ``status`` is the source's free-form string (scheduled, active,
    landed, cancelled, delayed, ...). ``synthesized`` marks placeholder
    records built when no real schedule matched.
    """
    flight_number: str
    airline_name: Optional[str] = None
    airline_code: Optional[str] = None
    departure: FlightEndpoint = field(default_factory=FlightEndpoint)
    arrival: FlightEndpoint = field(default_factory=FlightEndpoint)
    status: Optional[str] = None
    aircraft: AircraftDetails = field(default_factory=AircraftDetails)
    synthesized: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> 'ScheduleRecord':
        """Inverse of to_dict (used by the schedule store)."""
        return cls(
            flight_number=data.get('flight_number') or '',
            airline_name=data.get('airline_name'),
            airline_code=data.get('airline_code'),
            departure=FlightEndpoint.from_dict(data.get('departure')),
            arrival=FlightEndpoint.from_dict(data.get('arrival')),
            status=data.get('status'),
            aircraft=AircraftDetails.from_dict(data.get('aircraft')),
            synthesized=bool(data.get('synthesized', False)),
        )

    def to_dict(self) -> dict:
        return {
            'flight_number': self.flight_number,
            'airline_name': self.airline_name,
            'airline_code': self.airline_code,
            'departure': self.departure.to_dict(),
            'arrival': self.arrival.to_dict(),
            'status': self.status,
            'aircraft': self.aircraft.to_dict(),
            'synthesized': self.synthesized,
        }

    @property
    def delay_minutes(self) -> int:
        """Departure delay (actual - scheduled), 0 when either is unknown."""
        scheduled = parse_datetime(self.departure.scheduled)
        actual = parse_datetime(self.departure.actual)
        if scheduled is None or actual is None:
            return 0
        return round((actual - scheduled).total_seconds() / 60)


def parse_datetime(dt_str: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp from the API (trailing 'Z' accepted)."""
    if not dt_str:
        return None
    try:
        return datetime.fromisoformat(dt_str.replace('Z', '+00:00'))
    except (TypeError, ValueError):
        return None


def _section(flight: dict, key: str) -> dict:
    value = flight.get(key)
    return value if isinstance(value, dict) else {}


def schedule_from_aviationstack(flight: Any) -> Optional[ScheduleRecord]:
    """
    Map one AviationStack /flights row to a ScheduleRecord.

    Rows without any flight number are dropped (returns None).
    """
    if not isinstance(flight, dict):
        return None

    ident = _section(flight, 'flight')
    flight_number = ident.get('iata') or ident.get('icao')
    if not flight_number:
        return None

    airline = _section(flight, 'airline')
    return ScheduleRecord(
        flight_number=str(flight_number).strip().upper(),
        airline_name=airline.get('name'),
        airline_code=airline.get('iata'),
        departure=FlightEndpoint.from_dict(_section(flight, 'departure')),
        arrival=FlightEndpoint.from_dict(_section(flight, 'arrival')),
        status=flight.get('flight_status'),
        aircraft=AircraftDetails.from_dict(_section(flight, 'aircraft')),
    )


def parse_schedules(payload: Any) -> List[ScheduleRecord]:
    """Decode an AviationStack payload; anything malformed yields []."""
    if not isinstance(payload, dict):
        return []
    rows = payload.get('data')
    if not isinstance(rows, list):
        return []

    records = []
    for row in rows:
        record = schedule_from_aviationstack(row)
        if record is not None:
            records.append(record)
    return records
