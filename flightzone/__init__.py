"""
FlightZone Package.

Fuses live aircraft telemetry with airport flight schedules into one
enriched, zone-filtered flight view. Built with Flask, SQLAlchemy, Redis
and NumPy.

Modules:
    api/         REST endpoints for the flight snapshot, passenger lookups and status
    models/      SQLAlchemy schedule store (flight_schedules)
    ingestion/   Telemetry client, geo math, normalization, zone filter, pipeline
    enrichment/  Schedule records, correlation and status resolution
    services/    Schedule feed client, passenger lookup, demo data
    cache.py     Redis position cache with per-key expiry
    config.py    Centralized configuration from environment variables
"""

__version__ = '1.0.0'
