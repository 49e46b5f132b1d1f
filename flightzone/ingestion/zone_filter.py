"""
Zone filtering - keep positions within a radius of the reference airport.
"""

import logging
from typing import List, Sequence, Tuple

import numpy as np

from flightzone.ingestion.geo import haversine_distances
from flightzone.ingestion.normalizer import NormalizedPosition

logger = logging.getLogger(__name__)


def _distances(
    positions: Sequence[NormalizedPosition],
    center: Tuple[float, float],
) -> np.ndarray:
    return haversine_distances(
        center[0], center[1],
        [p.latitude for p in positions],
        [p.longitude for p in positions],
    )


def within_zone(
    position: NormalizedPosition,
    center: Tuple[float, float],
    radius_km: float,
) -> bool:
    """
    True when the position lies within radius_km of center (inclusive).

    Uses the same distance computation as filter_and_sort so the two agree
    exactly at the boundary.
    """
    return bool(_distances([position], center)[0] <= radius_km)


def filter_and_sort(
    positions: Sequence[NormalizedPosition],
    center: Tuple[float, float],
    radius_km: float,
) -> List[Tuple[NormalizedPosition, float]]:
    """
    Return (position, distance_km) pairs inside the zone, nearest first.

    Equal distances keep their input order (stable sort), so repeated
    runs over the same input give the same sequence.
    """
    if not positions:
        return []

    distances = _distances(positions, center)

    # NaN compares False here, so degenerate points drop out
    inside = np.flatnonzero(distances <= radius_km)
    order = inside[np.argsort(distances[inside], kind='stable')]

    logger.debug(f'{len(order)} of {len(positions)} positions within {radius_km} km')
    return [(positions[i], float(distances[i])) for i in order]
