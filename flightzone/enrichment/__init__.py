"""
Correlation of telemetry with schedules.

Matches live positions to timetable entries, synthesizes placeholders
for unmatched aircraft and resolves an operational status.
"""

from flightzone.enrichment.correlator import Correlator, ScheduleIndex, placeholder_schedule
from flightzone.enrichment.models import EnrichedFlight, FlightSnapshot
from flightzone.enrichment.schedule import ScheduleRecord
from flightzone.enrichment.status import FlightStatus, resolve_status

__all__ = [
    'Correlator',
    'ScheduleIndex',
    'placeholder_schedule',
    'EnrichedFlight',
    'FlightSnapshot',
    'ScheduleRecord',
    'FlightStatus',
    'resolve_status',
]
