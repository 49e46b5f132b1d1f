"""
Enrichment pipeline - fuses telemetry and schedules into one flight view.

Pipeline stages (one refresh cycle):
1. Fetch: telemetry states and airport departures, concurrently
2. Normalize: decode state vectors into NormalizedPositions
3. Dedupe: drop near-identical observations (tile overlaps, echoes)
4. Filter: keep the airport zone, nearest first (bounded view only)
5. Correlate: match each position to a schedule (or a placeholder)
6. Resolve: derive an operational status
7. Persist: best-effort write to the position cache (live data only)
   and schedule store

Each cycle builds a fresh, immutable FlightSnapshot. Nothing computed in
one cycle is mutated by the next, so readers never need a lock beyond
the reference swap.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple

import redis
from sqlalchemy.exc import SQLAlchemyError

from flightzone.cache import PositionCache
from flightzone.enrichment.correlator import Correlator, ScheduleIndex
from flightzone.enrichment.models import EnrichedFlight, FlightSnapshot
from flightzone.enrichment.schedule import ScheduleRecord
from flightzone.enrichment.status import resolve_live_status
from flightzone.ingestion.airports import icao_to_iata
from flightzone.ingestion.geo import ZoneTiler
from flightzone.ingestion.normalizer import NormalizedPosition, dedupe, normalize_states
from flightzone.ingestion.opensky_client import OpenSkyClient, StateVector
from flightzone.ingestion.zone_filter import filter_and_sort
from flightzone.models.flight_schedule import ScheduleStore
from flightzone.services.sample_data import sample_positions
from flightzone.services.schedule_client import ScheduleClient

logger = logging.getLogger(__name__)

NOT_AVAILABLE = 'N/A'


def enrich_positions(
    positions: Sequence[Tuple[NormalizedPosition, Optional[float]]],
    schedules: Sequence[ScheduleRecord],
    correlator: Optional[Correlator] = None,
) -> List[EnrichedFlight]:
    """
    Correlate positions with schedules and resolve their status.

    Pure: the schedule index is built here from the given list and
    discarded afterwards.
    """
    correlator = correlator or Correlator()
    index = ScheduleIndex(schedules)

    flights = []
    for position, distance_km in positions:
        schedule = correlator.match(position, index)
        flights.append(EnrichedFlight(
            callsign=position.callsign,
            position=position,
            distance_km=distance_km,
            gate=schedule.departure.gate or NOT_AVAILABLE,
            terminal=schedule.departure.terminal or NOT_AVAILABLE,
            status=resolve_live_status(position),
            schedule=schedule,
            last_update=position.observed_at,
        ))
    return flights


class EnrichmentPipeline:
    """
    Manages the refresh lifecycle.

    All collaborators are passed in; the pipeline owns no global clients.
    Can run as a background thread for continuous polling.
    """

    def __init__(
        self,
        telemetry_client: OpenSkyClient,
        schedule_client: ScheduleClient,
        airport_icao: str,
        center: Tuple[float, float],
        radius_km: float,
        tiler: Optional[ZoneTiler] = None,
        position_cache: Optional[PositionCache] = None,
        schedule_store: Optional[ScheduleStore] = None,
        bounded_view: bool = True,
        query_mode: str = 'global',
        demo_fallback: bool = True,
    ):
        """
        Initialize the pipeline.

        Args:
            telemetry_client: OpenSky client
            schedule_client: schedule feed client
            airport_icao: reference airport ICAO code (schedules are keyed by IATA)
            center: (lat, lon) of the reference point
            radius_km: zone radius in kilometers
            tiler: bounding box tiler for 'tiled' telemetry queries
            position_cache: optional position cache to write each cycle
            schedule_store: optional schedule store to write each cycle
            bounded_view: apply the zone filter by default
            query_mode: 'global' (one request) or 'tiled'
            demo_fallback: substitute demo positions when the telemetry feed fails
        """
        self.telemetry_client = telemetry_client
        self.schedule_client = schedule_client
        self.airport_icao = airport_icao
        self.airport_iata = icao_to_iata(airport_icao)
        self.center = center
        self.radius_km = radius_km
        self.tiler = tiler or ZoneTiler()
        self.position_cache = position_cache
        self.schedule_store = schedule_store
        self.bounded_view = bounded_view
        self.query_mode = query_mode
        self.demo_fallback = demo_fallback
        self.correlator = Correlator()

        # State tracking
        self._snapshot: Optional[FlightSnapshot] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_cycle_time: float = 0
        self._cycle_count: int = 0
        self._error_count: int = 0

        # Callbacks for external integration
        self._on_update_callbacks: List[Callable[[FlightSnapshot], None]] = []

    def add_update_callback(self, callback: Callable[[FlightSnapshot], None]) -> None:
        """Register callback invoked with each published snapshot."""
        self._on_update_callbacks.append(callback)

    @property
    def snapshot(self) -> Optional[FlightSnapshot]:
        """Most recently published snapshot (None before the first cycle)."""
        return self._snapshot

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    def _fetch_telemetry(self) -> Optional[List[StateVector]]:
        """States from the telemetry feed; None when the feed failed."""
        try:
            if self.query_mode == 'tiled':
                _, states = self.telemetry_client.get_states_in_zone(
                    self.center[0], self.center[1], self.radius_km, self.tiler,
                )
            else:
                _, states = self.telemetry_client.get_states()
            return states
        except Exception as e:
            self._error_count += 1
            logger.error(f'Telemetry feed unavailable this cycle: {e}')
            return None

    def _fetch_schedules(self) -> List[ScheduleRecord]:
        """Departures from the schedule feed; any failure yields []."""
        try:
            return self.schedule_client.get_departures(self.airport_iata)
        except Exception as e:
            self._error_count += 1
            logger.error(f'Schedule feed unavailable this cycle: {e}')
            return []

    def fetch_feeds(self) -> Tuple[Optional[List[StateVector]], List[ScheduleRecord]]:
        """
        Fetch both feeds concurrently and wait for both.

        The two fetches are independent: one failing or being slow does
        not affect the other's result. A failed telemetry fetch comes back
        as None so it can be told apart from an empty sky.
        """
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix='feed') as executor:
            telemetry_future = executor.submit(self._fetch_telemetry)
            schedule_future = executor.submit(self._fetch_schedules)
            return telemetry_future.result(), schedule_future.result()

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def build_snapshot(
        self,
        states: Optional[Sequence[StateVector]],
        schedules: Sequence[ScheduleRecord],
        bounded: Optional[bool] = None,
        now: Optional[datetime] = None,
    ) -> FlightSnapshot:
        """
        Run stages 2-6 on already fetched feed data.

        ``states`` is None when the telemetry feed failed; only then are
        sample positions substituted (with demo fallback enabled). An empty
        list is a real, empty sky.
        """
        bounded = self.bounded_view if bounded is None else bounded
        now = now or datetime.now(timezone.utc)

        demo = states is None and self.demo_fallback
        if demo:
            logger.warning('Telemetry unavailable this cycle, using sample positions')
            positions = sample_positions(self.center[0], self.center[1], now=now)
        else:
            positions = dedupe(normalize_states(
                (sv for sv in states or [] if sv.has_position()),
                now=now,
            ))

        if bounded:
            located = filter_and_sort(positions, self.center, self.radius_km)
        else:
            located = [(p, None) for p in positions]

        flights = enrich_positions(located, schedules, self.correlator)

        return FlightSnapshot(
            flights=tuple(flights),
            generated_at=now,
            total_live=0 if demo else len(positions),
            total_scheduled=len(schedules),
            bounded=bounded,
            demo=demo,
        )

    def _persist(self, snapshot: FlightSnapshot, schedules: Sequence[ScheduleRecord]) -> None:
        """
        Best-effort writes; failures are logged and never abort the cycle.

        Sample positions never reach the position cache, where a key means
        live data.
        """
        if self.position_cache is not None and not snapshot.demo:
            try:
                self.position_cache.store_positions(f.position for f in snapshot.flights)
            except redis.RedisError as e:
                logger.error(f'Failed to write position cache: {e}')

        if self.schedule_store is not None:
            try:
                self.schedule_store.upsert(schedules)
            except SQLAlchemyError as e:
                logger.error(f'Failed to write schedule store: {e}')

    def run_cycle(self, bounded: Optional[bool] = None) -> FlightSnapshot:
        """
        Execute one refresh cycle and return its snapshot.

        Always completes: feed failures degrade to empty contributions and
        store failures are only logged.
        """
        started = time.perf_counter()
        states, schedules = self.fetch_feeds()
        snapshot = self.build_snapshot(states, schedules, bounded=bounded)
        self._persist(snapshot, schedules)

        self._cycle_count += 1
        self._last_cycle_time = time.time()

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f'Cycle {self._cycle_count}: {len(snapshot.flights)} flights '
            f'({snapshot.total_live} live, {snapshot.total_scheduled} scheduled) '
            f'in {elapsed_ms:.0f} ms'
        )
        return snapshot

    def _publish(self, snapshot: FlightSnapshot) -> None:
        self._snapshot = snapshot
        for callback in self._on_update_callbacks:
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f'Update callback error: {e}')

    def refresh(self, bounded: Optional[bool] = None) -> FlightSnapshot:
        """Run a cycle and publish it as the current snapshot."""
        snapshot = self.run_cycle(bounded=bounded)
        self._publish(snapshot)
        return snapshot

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run_continuous(self, interval: float) -> None:
        """
        Run cycles back to back, waiting `interval` seconds between them.

        The next cycle is only scheduled after the previous one finished,
        so cycles never overlap. This method blocks - use
        start_background() for non-blocking.
        """
        logger.info(f'Starting continuous enrichment (interval={interval}s)')

        while not self._stop_event.is_set():
            try:
                snapshot = self.run_cycle()
            except Exception as e:
                self._error_count += 1
                logger.error(f'Enrichment cycle error: {e}')
            else:
                # A cycle that finished after stop() is discarded
                if not self._stop_event.is_set():
                    self._publish(snapshot)
            self._stop_event.wait(interval)

        logger.info('Enrichment stopped')

    def start_background(self, interval: float) -> None:
        """Start enrichment in a background thread."""
        if self._thread and self._thread.is_alive():
            logger.warning('Enrichment already running')
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_continuous,
            args=(interval,),
            name='enrichment',
            daemon=True,
        )
        self._thread.start()
        logger.info('Background enrichment started')

    def stop(self, timeout: float = 5.0) -> None:
        """Stop background enrichment; an in-flight cycle's result is dropped."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive() and not self._stop_event.is_set())

    @property
    def stats(self) -> dict:
        """Get pipeline statistics."""
        return {
            'cycle_count': self._cycle_count,
            'error_count': self._error_count,
            'last_cycle_time': self._last_cycle_time,
            'running': self.running,
            'airport': self.airport_icao,
            'radius_km': self.radius_km,
            'query_mode': self.query_mode,
        }
