"""
FlightZone Flask Application.

Main entry point for the web application. Initializes:
- Schedule store schema
- Position cache connection
- Enrichment pipeline and its refresh loop
- API routes

Usage:
    python -m flightzone.app

Or with gunicorn:
    gunicorn 'flightzone.app:create_app()'
"""

import atexit
import logging
import os
from typing import Optional

from flask import Flask
from flask_cors import CORS

from flightzone.api import flights_bp, metrics_bp, passenger_bp
from flightzone.cache import PositionCache
from flightzone.config import AppConfig, config as default_config
from flightzone.ingestion.geo import ZoneTiler
from flightzone.ingestion.opensky_client import OpenSkyClient
from flightzone.ingestion.pipeline import EnrichmentPipeline
from flightzone.models.base import init_db, make_engine, make_session_factory
from flightzone.models.flight_schedule import ScheduleStore
from flightzone.services.passenger import PassengerService
from flightzone.services.schedule_client import ScheduleClient

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if default_config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def build_pipeline(
    app_config: AppConfig,
    position_cache: Optional[PositionCache] = None,
    schedule_store: Optional[ScheduleStore] = None,
) -> EnrichmentPipeline:
    """Wire the pipeline and its feed clients from configuration."""
    airport = app_config.airport
    return EnrichmentPipeline(
        telemetry_client=OpenSkyClient.from_config(app_config.opensky),
        schedule_client=ScheduleClient.from_config(
            app_config.aviationstack,
            demo_fallback=app_config.ingestion.demo_fallback,
        ),
        airport_icao=airport.icao,
        center=airport.location,
        radius_km=airport.zone_radius_km,
        tiler=ZoneTiler.from_config(app_config.tiling),
        position_cache=position_cache,
        schedule_store=schedule_store,
        bounded_view=app_config.ingestion.bounded_view,
        query_mode=app_config.opensky.query_mode,
        demo_fallback=app_config.ingestion.demo_fallback,
    )


def create_app(
    app_config: Optional[AppConfig] = None,
    start_pipeline: bool = True,
    pipeline: Optional[EnrichmentPipeline] = None,
    position_cache: Optional[PositionCache] = None,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        app_config: Configuration (module defaults if None)
        start_pipeline: Whether to start the background refresh loop.
                        Set to False for testing.
        pipeline: Pre-built pipeline (built from config if None)
        position_cache: Pre-built position cache (Redis from config if None)

    Returns:
        Configured Flask application instance.
    """
    app_config = app_config or default_config

    app = Flask(__name__)
    app.config['SECRET_KEY'] = app_config.secret_key

    # Enable CORS for API endpoints
    CORS(app, resources={r'/api/*': {'origins': '*'}})

    logger.info('Initializing schedule store...')
    engine = make_engine(app_config.database.url, echo=app_config.debug)
    init_db(engine)
    session_factory = make_session_factory(engine)
    schedule_store = ScheduleStore(session_factory)

    position_cache = position_cache or PositionCache.from_config(app_config.redis)

    if pipeline is None:
        pipeline = build_pipeline(app_config, position_cache, schedule_store)

    app.config['SESSION_FACTORY'] = session_factory
    app.config['SCHEDULE_STORE'] = schedule_store
    app.config['PIPELINE'] = pipeline
    app.config['PASSENGER_SERVICE'] = PassengerService(schedule_store, position_cache)

    app.register_blueprint(flights_bp)
    app.register_blueprint(passenger_bp)
    app.register_blueprint(metrics_bp)

    if start_pipeline:
        pipeline.start_background(app_config.ingestion.refresh_interval)
        atexit.register(pipeline.stop)
        logger.info(
            f'Enrichment started for {app_config.airport.icao} '
            f'({app_config.airport.zone_radius_km} km, every {app_config.ingestion.refresh_interval}s)'
        )

    @app.route('/health')
    def health():
        """Simple health check endpoint."""
        return {'status': 'ok'}

    @app.errorhandler(404)
    def not_found(e):
        return {'error': 'Not found'}, 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'error': 'Internal server error'}, 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    port = int(os.environ.get('PORT', 5000))
    logger.info(f'Starting FlightZone on http://localhost:{port}')

    app.run(
        host='0.0.0.0',
        port=port,
        debug=default_config.debug,
        use_reloader=False,  # Disable reloader to prevent duplicate refresh threads
    )


if __name__ == '__main__':
    run_development_server()
