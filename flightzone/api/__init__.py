"""
API module for FlightZone.

Provides REST endpoints for:
- Enriched flight snapshot and lookups
- Passenger flight information
- System status
"""

from flightzone.api.flights import flights_bp, passenger_bp
from flightzone.api.metrics import metrics_bp

__all__ = ['flights_bp', 'passenger_bp', 'metrics_bp']
