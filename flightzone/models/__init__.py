"""
Database models for FlightZone.

Only schedules are persisted relationally; live positions live in the
Redis position cache.
"""

from flightzone.models.base import Base, init_db, make_engine, make_session_factory, session_scope
from flightzone.models.flight_schedule import FlightSchedule, ScheduleStore

__all__ = [
    'Base',
    'init_db',
    'make_engine',
    'make_session_factory',
    'session_scope',
    'FlightSchedule',
    'ScheduleStore',
]
