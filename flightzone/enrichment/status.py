"""
Operational status resolution.

Two paths, both total:

- Live path (a telemetry position is available): decided from the
  on-ground flag and altitude alone.
- Schedule path (only timetable data, optionally with the cached
  on-ground flag): decided from the schedule's status string and its
  actual departure/arrival times.
"""

from enum import Enum
from typing import Optional

from flightzone.enrichment.schedule import ScheduleRecord
from flightzone.ingestion.normalizer import NormalizedPosition

TAXI_CEILING_FT = 1000
CLIMB_CEILING_FT = 5000


class FlightStatus(str, Enum):
    ON_GROUND = 'on_ground'
    TAXIING = 'taxiing'
    CLIMBING = 'climbing'
    IN_FLIGHT = 'in_flight'
    LANDED = 'landed'
    CANCELLED = 'cancelled'
    DELAYED = 'delayed'
    SCHEDULED = 'scheduled'
    ON_TIME = 'on_time'

    @property
    def label(self) -> str:
        """Human readable form for passenger displays."""
        return self.value.replace('_', ' ').title()


def resolve_live_status(position: NormalizedPosition) -> FlightStatus:
    """
    Status from telemetry:

    - on_ground -> ON_GROUND
    - below 1000 ft -> TAXIING
    - above 5000 ft -> IN_FLIGHT
    - otherwise -> CLIMBING
    """
    if position.on_ground:
        return FlightStatus.ON_GROUND
    if position.altitude_ft < TAXI_CEILING_FT:
        return FlightStatus.TAXIING
    if position.altitude_ft > CLIMB_CEILING_FT:
        return FlightStatus.IN_FLIGHT
    return FlightStatus.CLIMBING


def resolve_schedule_status(
    schedule: ScheduleRecord,
    on_ground: Optional[bool] = None,
) -> FlightStatus:
    """
    Status from a schedule plus an optional live on-ground flag.

    Order: cancelled, landed (arrival.actual), in flight (departure.actual),
    on ground/boarding (live flag), delayed, else on time.
    """
    source_status = (schedule.status or '').strip().lower()

    if source_status == 'cancelled':
        return FlightStatus.CANCELLED
    if schedule.arrival.actual:
        return FlightStatus.LANDED
    if schedule.departure.actual:
        return FlightStatus.IN_FLIGHT
    if on_ground is True:
        return FlightStatus.ON_GROUND
    if source_status == 'delayed':
        return FlightStatus.DELAYED
    return FlightStatus.ON_TIME


def resolve_status(
    position: Optional[NormalizedPosition],
    schedule: Optional[ScheduleRecord],
    on_ground: Optional[bool] = None,
) -> FlightStatus:
    """
    Pick the resolution path from what is available.

    A live position always wins. Without one, the schedule path is used.
    With neither, the flight can only be SCHEDULED.
    """
    if position is not None:
        return resolve_live_status(position)
    if schedule is not None:
        return resolve_schedule_status(schedule, on_ground)
    return FlightStatus.SCHEDULED
