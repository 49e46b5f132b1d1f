"""
External integration services.

Handles the schedule feed with graceful degradation when it is
unavailable, and passenger-facing lookups over the stores.
"""

from flightzone.services.schedule_client import ScheduleClient
from flightzone.services.passenger import PassengerService

__all__ = ['ScheduleClient', 'PassengerService']
