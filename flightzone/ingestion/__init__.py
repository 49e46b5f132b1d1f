"""
Data ingestion module for FlightZone.

Handles polling the telemetry feed, decoding state vectors, geo math and
zone filtering. The enrichment pipeline lives in
flightzone.ingestion.pipeline.
"""

from flightzone.ingestion.geo import BoundingBox, ZoneTiler, haversine_distance
from flightzone.ingestion.opensky_client import OpenSkyClient, StateVector

__all__ = ['BoundingBox', 'ZoneTiler', 'haversine_distance', 'OpenSkyClient', 'StateVector']
