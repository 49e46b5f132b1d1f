"""
Demo data for degraded mode.

Used only when a feed returns nothing usable and DEMO_FALLBACK is on,
so the dashboard keeps showing something plausible. Times are relative
to ``now`` so the demo schedules always look current.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from flightzone.enrichment.schedule import AircraftDetails, FlightEndpoint, ScheduleRecord
from flightzone.ingestion.normalizer import NormalizedPosition


def _iso(now: datetime, minutes: float) -> str:
    return (now + timedelta(minutes=minutes)).isoformat()


def sample_schedules(now: Optional[datetime] = None) -> List[ScheduleRecord]:
    """Three departures from FRA: one scheduled, one later, one airborne."""
    now = now or datetime.now(timezone.utc)
    return [
        ScheduleRecord(
            flight_number='LH123',
            airline_name='Lufthansa',
            airline_code='LH',
            departure=FlightEndpoint(
                airport='Frankfurt am Main', iata='FRA',
                scheduled=_iso(now, 60), estimated=_iso(now, 62),
                terminal='Terminal 1', gate='A5',
            ),
            arrival=FlightEndpoint(
                airport='Berlin Brandenburg', iata='BER',
                scheduled=_iso(now, 90), estimated=_iso(now, 92),
                terminal='Terminal 1', gate='B3',
            ),
            status='scheduled',
            aircraft=AircraftDetails(registration='D-AIDE', iata='A320', icao='A320'),
        ),
        ScheduleRecord(
            flight_number='DL456',
            airline_name='Delta Air Lines',
            airline_code='DL',
            departure=FlightEndpoint(
                airport='Frankfurt am Main', iata='FRA',
                scheduled=_iso(now, 120), estimated=_iso(now, 122),
                terminal='Terminal 2', gate='C12',
            ),
            arrival=FlightEndpoint(
                airport='New York John F Kennedy', iata='JFK',
                scheduled=_iso(now, 600), estimated=_iso(now, 602),
                terminal='Terminal 4', gate='A20',
            ),
            status='scheduled',
            aircraft=AircraftDetails(registration='N123DA', iata='A350', icao='A350'),
        ),
        ScheduleRecord(
            flight_number='BA789',
            airline_name='British Airways',
            airline_code='BA',
            departure=FlightEndpoint(
                airport='Frankfurt am Main', iata='FRA',
                scheduled=_iso(now, -10), estimated=_iso(now, -8),
                actual=_iso(now, -8), terminal='Terminal 3', gate='E8',
            ),
            arrival=FlightEndpoint(
                airport='London Heathrow', iata='LHR',
                scheduled=_iso(now, 60), estimated=_iso(now, 58),
                terminal='Terminal 5', gate='B15',
            ),
            status='active',
            aircraft=AircraftDetails(registration='G-XWBA', iata='B787', icao='B787'),
        ),
    ]


def sample_positions(
    center_lat: float = 50.0379,
    center_lon: float = 8.5622,
    now: Optional[datetime] = None,
) -> List[NormalizedPosition]:
    """Positions for the demo schedules, all within 35 km of the reference point."""
    now = now or datetime.now(timezone.utc)
    demo = [
        # callsign, dlat, dlon, altitude_ft, speed_kts, heading, on_ground
        ('LH123', 0.0, 0.0, 0.0, 12.0, 90.0, True),
        ('DL456', 0.25, -0.2, 35000.0, 450.0, 270.0, False),
        ('BA789', 0.1, 0.3, 3000.0, 220.0, 180.0, False),
    ]
    return [
        NormalizedPosition(
            callsign=callsign,
            origin_country=None,
            longitude=center_lon + dlon,
            latitude=center_lat + dlat,
            altitude_ft=altitude,
            velocity_kts=speed,
            heading=heading,
            vertical_rate=0.0,
            on_ground=on_ground,
            observed_at=now,
        )
        for callsign, dlat, dlon, altitude, speed, heading, on_ground in demo
    ]
