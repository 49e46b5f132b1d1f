"""
Flight data API endpoints.

Provides endpoints for:
- GET /api/flights - Latest enriched snapshot
- GET /api/flights/summary - Counts by status / airborne vs ground
- GET /api/flights/terminal/<terminal> - Flights departing a terminal
- GET /api/flights/search?q= - Schedule search
- GET /api/flights/airline/<code> - Schedules for one airline
- GET /api/flights/<callsign> - Single flight details
- GET /api/passenger/<flight_number> - Passenger flight lookup
"""

import logging
import time
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request

logger = logging.getLogger(__name__)

flights_bp = Blueprint('flights', __name__, url_prefix='/api/flights')
passenger_bp = Blueprint('passenger', __name__, url_prefix='/api/passenger')


def _snapshot():
    pipeline = current_app.config.get('PIPELINE')
    return pipeline.snapshot if pipeline else None


def _no_snapshot():
    return jsonify({'error': 'No flight data yet, first refresh pending'}), 503


@flights_bp.route('', methods=['GET'])
def list_flights():
    """
    List flights from the latest snapshot.

    Query parameters:
    - status: only flights with this resolved status (e.g. in_flight)
    - airborne_only: boolean, drop on-ground aircraft (default false)
    - limit: int, max results to return (default 100)

    Flights are in snapshot order (nearest first for bounded views).
    """
    start_time = time.perf_counter()

    snapshot = _snapshot()
    if snapshot is None:
        return _no_snapshot()

    status = request.args.get('status')
    airborne_only = request.args.get('airborne_only', 'false').lower() == 'true'
    try:
        limit = min(int(request.args.get('limit', 100)), 500)
    except ValueError:
        return jsonify({'error': 'limit must be an integer'}), 400

    flights = list(snapshot.flights)
    if status:
        flights = [f for f in flights if f.status.value == status]
    if airborne_only:
        flights = [f for f in flights if not f.position.on_ground]

    flights = flights[:limit]
    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'flights': [f.to_dict() for f in flights],
        'count': len(flights),
        'bounded': snapshot.bounded,
        'generated_at': snapshot.generated_at.isoformat(),
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'query_time_ms': round(query_time_ms, 2),
    })


@flights_bp.route('/summary', methods=['GET'])
def get_summary():
    """Aggregate counts for the latest snapshot."""
    snapshot = _snapshot()
    if snapshot is None:
        return _no_snapshot()
    return jsonify(snapshot.summary())


@flights_bp.route('/terminal/<terminal>', methods=['GET'])
def flights_by_terminal(terminal: str):
    snapshot = _snapshot()
    if snapshot is None:
        return _no_snapshot()

    flights = snapshot.by_terminal(terminal)
    return jsonify({
        'terminal': terminal,
        'flights': [f.to_dict() for f in flights],
        'count': len(flights),
    })


@flights_bp.route('/search', methods=['GET'])
def search_schedules():
    """Search stored schedules by flight number, airline or airport."""
    query = request.args.get('q', '').strip()
    if not query:
        return jsonify({'error': 'q parameter required'}), 400

    store = current_app.config['SCHEDULE_STORE']
    results = store.search(query)
    return jsonify({
        'query': query,
        'flights': [
            {
                'flight_number': r.flight_number,
                'airline': r.airline_name,
                'departure': r.departure.airport,
                'arrival': r.arrival.airport,
                'status': r.status,
                'scheduled_departure': r.departure.scheduled,
            }
            for r in results
        ],
        'count': len(results),
    })


@flights_bp.route('/airline/<airline_code>', methods=['GET'])
def flights_by_airline(airline_code: str):
    store = current_app.config['SCHEDULE_STORE']
    results = store.by_airline(airline_code)
    return jsonify({
        'airline_code': airline_code.upper(),
        'flights': [r.to_dict() for r in results],
        'count': len(results),
    })


@flights_bp.route('/<callsign>', methods=['GET'])
def get_flight(callsign: str):
    """
    Get details for a single flight.

    Served from the latest snapshot when the aircraft is live; otherwise
    falls back to the stored schedule and cached position.
    """
    snapshot = _snapshot()
    if snapshot is not None:
        flight = snapshot.get(callsign)
        if flight is not None:
            return jsonify(flight.to_dict())

    passenger_service = current_app.config['PASSENGER_SERVICE']
    info = passenger_service.get_flight_info(callsign)
    if info is not None:
        return jsonify(info.to_dict())

    return jsonify({'error': 'Flight not found'}), 404


@passenger_bp.route('/<flight_number>', methods=['GET'])
def passenger_flight_info(flight_number: str):
    passenger_service = current_app.config['PASSENGER_SERVICE']
    info = passenger_service.get_flight_info(flight_number)
    if info is None:
        return jsonify({'error': 'Flight not found'}), 404
    return jsonify(info.to_dict())
