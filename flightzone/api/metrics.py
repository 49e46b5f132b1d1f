"""
Status API endpoints.

Provides endpoints for:
- GET /api/metrics/status - Pipeline, feed and store health
"""

import logging
import time
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

metrics_bp = Blueprint('metrics', __name__, url_prefix='/api/metrics')


@metrics_bp.route('/status', methods=['GET'])
def get_system_status():
    """
    Get system health and status information.

    Returns:
    - Enrichment pipeline status
    - Schedule store connectivity
    - Schedule feed statistics
    """
    start_time = time.perf_counter()

    pipeline = current_app.config.get('PIPELINE')
    pipeline_stats = pipeline.stats if pipeline else {'running': False}
    schedule_stats = pipeline.schedule_client.stats if pipeline else {}

    db_ok = True
    session_factory = current_app.config.get('SESSION_FACTORY')
    try:
        with session_factory() as session:
            session.execute(text('SELECT 1'))
    except SQLAlchemyError as e:
        db_ok = False
        logger.error(f'Database health check failed: {e}')

    snapshot = pipeline.snapshot if pipeline else None
    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'status': 'healthy' if (db_ok and pipeline_stats.get('running')) else 'degraded',
        'database': {'connected': db_ok},
        'pipeline': pipeline_stats,
        'schedules': schedule_stats,
        'snapshot': {
            'flights': len(snapshot.flights) if snapshot else 0,
            'generated_at': snapshot.generated_at.isoformat() if snapshot else None,
        },
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'query_time_ms': round(query_time_ms, 2),
    })
