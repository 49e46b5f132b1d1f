"""
Enriched flight view produced once per refresh cycle.

Snapshots are immutable: each cycle builds a new one and the previous
snapshot is simply dropped.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from flightzone.enrichment.schedule import ScheduleRecord
from flightzone.enrichment.status import FlightStatus
from flightzone.ingestion.normalizer import NormalizedPosition


@dataclass(frozen=True)
class EnrichedFlight:
    """
    A live position joined with its (possibly synthesized) schedule.

    distance_km is only set when the cycle applied the zone filter.
    """
    callsign: str
    position: NormalizedPosition
    gate: str
    terminal: str
    status: FlightStatus
    schedule: ScheduleRecord
    last_update: datetime
    distance_km: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            'callsign': self.callsign,
            'position': self.position.to_dict(),
            'distance_km': round(self.distance_km, 1) if self.distance_km is not None else None,
            'gate': self.gate,
            'terminal': self.terminal,
            'status': self.status.value,
            'schedule': self.schedule.to_dict(),
            'last_update': self.last_update.isoformat(),
        }


@dataclass(frozen=True)
class FlightSnapshot:
    """Result of one enrichment cycle."""
    flights: Tuple[EnrichedFlight, ...]
    generated_at: datetime
    total_live: int
    total_scheduled: int
    bounded: bool
    # Positions are sample data standing in for an unavailable telemetry feed
    demo: bool = False

    def get(self, callsign: str) -> Optional[EnrichedFlight]:
        callsign = callsign.strip().upper()
        for flight in self.flights:
            if flight.callsign == callsign:
                return flight
        return None

    def by_terminal(self, terminal: str) -> Tuple[EnrichedFlight, ...]:
        return tuple(f for f in self.flights if f.terminal == terminal)

    def summary(self) -> dict:
        """Counts for dashboards: totals, airborne vs ground, per status."""
        statuses = Counter(f.status.value for f in self.flights)
        on_ground = sum(1 for f in self.flights if f.position.on_ground)
        return {
            'total_flights': len(self.flights),
            'in_flight': len(self.flights) - on_ground,
            'on_ground': on_ground,
            'by_status': dict(statuses),
            'total_live': self.total_live,
            'total_scheduled': self.total_scheduled,
            'demo': self.demo,
            'timestamp': self.generated_at.isoformat(),
        }

    def to_dict(self) -> dict:
        return {
            'flights': [f.to_dict() for f in self.flights],
            'count': len(self.flights),
            'total_live': self.total_live,
            'total_scheduled': self.total_scheduled,
            'bounded': self.bounded,
            'demo': self.demo,
            'generated_at': self.generated_at.isoformat(),
        }
