"""
FlightSchedule model - latest known timetable entry per flight number.

One row per flight number (upsert pattern). The nested departure,
arrival and aircraft sections are kept as JSON documents; the fields we
query by (registration, airline, airports, scheduled departure) are
copied into indexed columns.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import JSON, DateTime, String, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Mapped, mapped_column, sessionmaker

from flightzone.enrichment.schedule import ScheduleRecord
from flightzone.models.base import Base, session_scope

logger = logging.getLogger(__name__)


class FlightSchedule(Base):
    """Stored schedule document keyed by flight number."""

    __tablename__ = 'flight_schedules'

    flight_number: Mapped[str] = mapped_column(
        String(16),
        primary_key=True,
        comment='IATA (or ICAO) flight number, e.g. LH123'
    )

    airline_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    airline_code: Mapped[Optional[str]] = mapped_column(String(8), nullable=True, index=True)
    status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    registration: Mapped[Optional[str]] = mapped_column(
        String(16),
        nullable=True,
        index=True,
        comment='Aircraft registration, secondary lookup key'
    )
    departure_airport: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    arrival_airport: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    scheduled_departure: Mapped[Optional[str]] = mapped_column(
        String(40),
        nullable=True,
        comment='ISO timestamp as sent by the feed'
    )

    departure: Mapped[dict] = mapped_column(JSON, default=dict)
    arrival: Mapped[dict] = mapped_column(JSON, default=dict)
    aircraft: Mapped[dict] = mapped_column(JSON, default=dict)

    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment='Set on every upsert'
    )

    def to_record(self) -> ScheduleRecord:
        return ScheduleRecord.from_dict({
            'flight_number': self.flight_number,
            'airline_name': self.airline_name,
            'airline_code': self.airline_code,
            'departure': self.departure,
            'arrival': self.arrival,
            'status': self.status,
            'aircraft': self.aircraft,
        })

    def __repr__(self) -> str:
        return f'<FlightSchedule {self.flight_number} {self.status}>'


def _row_values(record: ScheduleRecord, now: datetime) -> dict:
    return {
        'flight_number': record.flight_number,
        'airline_name': record.airline_name,
        'airline_code': record.airline_code,
        'status': record.status,
        'registration': record.aircraft.registration,
        'departure_airport': record.departure.airport,
        'arrival_airport': record.arrival.airport,
        'scheduled_departure': record.departure.scheduled,
        'departure': record.departure.to_dict(),
        'arrival': record.arrival.to_dict(),
        'aircraft': record.aircraft.to_dict(),
        'last_updated': now,
    }


class ScheduleStore:
    """Upsert and lookup of schedules in the flight_schedules table."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def upsert(self, records: Iterable[ScheduleRecord]) -> int:
        """
        Insert or replace one row per flight number.

        Placeholder records are skipped; later duplicates in the same batch
        overwrite earlier ones. Returns the count of rows written.
        """
        now = datetime.now(timezone.utc)
        rows = {}
        for record in records:
            if record.synthesized or not record.flight_number:
                continue
            rows[record.flight_number] = _row_values(record, now)

        if not rows:
            return 0

        with session_scope(self.session_factory) as session:
            insert = pg_insert if session.get_bind().dialect.name == 'postgresql' else sqlite_insert
            for values in rows.values():
                stmt = insert(FlightSchedule).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=['flight_number'],
                    set_={
                        column: getattr(stmt.excluded, column)
                        for column in values
                        if column != 'flight_number'
                    },
                )
                session.execute(stmt)

        logger.debug(f'Upserted {len(rows)} schedules')
        return len(rows)

    def get(self, flight_number: str) -> Optional[ScheduleRecord]:
        with session_scope(self.session_factory) as session:
            row = session.get(FlightSchedule, flight_number.strip().upper())
            return row.to_record() if row else None

    def find(self, query: str) -> Optional[ScheduleRecord]:
        """
        Best schedule for a passenger-entered flight number.

        Tries, in order: exact flight number, aircraft registration,
        flight number prefix, flight number substring (case-insensitive).
        Wildcard characters in the query match literally.
        """
        query = query.strip().upper()
        if not query:
            return None

        conditions = [
            FlightSchedule.flight_number == query,
            FlightSchedule.registration == query,
            FlightSchedule.flight_number.istartswith(query, autoescape=True),
            FlightSchedule.flight_number.icontains(query, autoescape=True),
        ]
        with session_scope(self.session_factory) as session:
            for condition in conditions:
                row = session.scalars(
                    select(FlightSchedule)
                    .where(condition)
                    .order_by(FlightSchedule.flight_number)
                    .limit(1)
                ).first()
                if row is not None:
                    return row.to_record()
        return None

    def search(self, text: str, limit: int = 20) -> List[ScheduleRecord]:
        """Case-insensitive search over flight number, airline and airports."""
        text = text.strip()
        with session_scope(self.session_factory) as session:
            rows = session.scalars(
                select(FlightSchedule)
                .where(or_(
                    FlightSchedule.flight_number.icontains(text, autoescape=True),
                    FlightSchedule.airline_name.icontains(text, autoescape=True),
                    FlightSchedule.departure_airport.icontains(text, autoescape=True),
                    FlightSchedule.arrival_airport.icontains(text, autoescape=True),
                ))
                .order_by(FlightSchedule.flight_number)
                .limit(limit)
            ).all()
            return [row.to_record() for row in rows]

    def by_airline(self, airline_code: str, limit: int = 50) -> List[ScheduleRecord]:
        """Schedules for an airline, earliest departure first."""
        with session_scope(self.session_factory) as session:
            rows = session.scalars(
                select(FlightSchedule)
                .where(FlightSchedule.airline_code == airline_code.strip().upper())
                .order_by(FlightSchedule.scheduled_departure, FlightSchedule.flight_number)
                .limit(limit)
            ).all()
            return [row.to_record() for row in rows]

    def all(self) -> List[ScheduleRecord]:
        with session_scope(self.session_factory) as session:
            rows = session.scalars(
                select(FlightSchedule).order_by(FlightSchedule.flight_number)
            ).all()
            return [row.to_record() for row in rows]

    def last_updated(self, flight_number: str) -> Optional[datetime]:
        with session_scope(self.session_factory) as session:
            row = session.get(FlightSchedule, flight_number.strip().upper())
            return row.last_updated if row else None
