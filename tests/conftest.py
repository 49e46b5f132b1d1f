import json
import re
from datetime import datetime, timezone

import pytest
import requests

from flightzone.enrichment.schedule import AircraftDetails, FlightEndpoint, ScheduleRecord
from flightzone.ingestion.normalizer import NormalizedPosition
from flightzone.ingestion.opensky_client import parse_states
from flightzone.models.base import init_db, make_engine, make_session_factory
from flightzone.models.flight_schedule import ScheduleStore

FRA = (50.0379, 8.5622)
NOW = datetime(2024, 5, 3, 19, 40, tzinfo=timezone.utc)


def make_response(status_code=200, json_body=None, text=''):
    """Real requests.Response with a canned body."""
    response = requests.Response()
    response.status_code = status_code
    response.url = 'https://example.test'
    response.encoding = 'utf-8'
    if json_body is not None:
        response._content = json.dumps(json_body).encode('utf-8')
    else:
        response._content = text.encode('utf-8')
    return response


class FakeSession:
    """Stands in for requests.Session; replies through a handler."""

    def __init__(self, handler):
        self.handler = handler
        self.headers = {}
        self.calls = []

    def get(self, url, params=None, auth=None, timeout=None):
        self.calls.append({'url': url, 'params': dict(params or {}), 'auth': auth})
        return self.handler(url, params or {}, auth)


class FakeRedisPipeline:
    def __init__(self, client):
        self.client = client
        self.ops = []

    def hset(self, key, mapping):
        self.ops.append(('hset', key, mapping))
        return self

    def expire(self, key, ttl):
        self.ops.append(('expire', key, ttl))
        return self

    def execute(self):
        for op, key, arg in self.ops:
            if op == 'hset':
                self.client.hset(key, mapping=arg)
            else:
                self.client.expire(key, arg)
        self.ops = []


class FakeRedis:
    """In-memory subset of the redis client API used by PositionCache."""

    def __init__(self):
        self.hashes = {}
        self.ttls = {}

    def pipeline(self):
        return FakeRedisPipeline(self)

    def hset(self, key, mapping):
        self.hashes.setdefault(key, {}).update(mapping)

    def expire(self, key, ttl):
        self.ttls[key] = ttl

    def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    def scan_iter(self, match):
        regex = redis_glob_regex(match)
        return iter(sorted(k for k in self.hashes if regex.match(k)))


def redis_glob_regex(pattern):
    """Compile a Redis MATCH glob; backslash escapes the next character."""
    out = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == '\\' and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if ch == '*':
            out.append('.*')
        elif ch == '?':
            out.append('.')
        elif ch == '[' and ']' in pattern[i + 1:]:
            end = pattern.index(']', i + 1)
            out.append('[' + re.escape(pattern[i + 1:end]) + ']')
            i = end + 1
            continue
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile(''.join(out) + r'\Z', re.DOTALL)


class FakeTelemetry:
    """Telemetry client double returning canned state arrays."""

    def __init__(self, states=None, error=None):
        self.states = states or []
        self.error = error
        self.zone_calls = []

    def get_states(self, bbox=None):
        if self.error:
            raise self.error
        return 1714765200, parse_states({'states': self.states})

    def get_states_in_zone(self, center_lat, center_lon, radius_km, tiler):
        self.zone_calls.append((center_lat, center_lon, radius_km))
        return self.get_states()


class FakeSchedules:
    """Schedule client double."""

    def __init__(self, schedules=None, error=None):
        self.schedules = schedules or []
        self.error = error
        self.requested = []

    def get_departures(self, iata_code):
        self.requested.append(iata_code)
        if self.error:
            raise self.error
        return list(self.schedules)

    @property
    def stats(self):
        return {'requests_made': len(self.requested)}


def state(callsign='DLH400 ', lat=50.05, lon=8.57, altitude_m=3000.0,
          on_ground=False, velocity=120.0, last_contact=1714765200):
    """Raw OpenSky state array."""
    return [
        'abc123', callsign, 'Germany', last_contact - 2, last_contact,
        lon, lat, altitude_m, on_ground, velocity, 90.0, 2.5,
        None, altitude_m, '1000', False, 0,
    ]


def position(callsign='LH123', lat=FRA[0], lon=FRA[1], altitude_ft=8000.0, on_ground=False):
    return NormalizedPosition(
        callsign=callsign,
        origin_country='Germany',
        longitude=lon,
        latitude=lat,
        altitude_ft=altitude_ft,
        velocity_kts=250.0,
        heading=90.0,
        vertical_rate=0.0,
        on_ground=on_ground,
        observed_at=NOW,
    )


def schedule(flight_number='LH123', registration=None, status='scheduled',
             gate='A5', terminal='Terminal 1', dep_actual=None, arr_actual=None,
             airline='Lufthansa', airline_code='LH', scheduled='2024-05-03T20:00:00+00:00'):
    return ScheduleRecord(
        flight_number=flight_number,
        airline_name=airline,
        airline_code=airline_code,
        departure=FlightEndpoint(
            airport='Frankfurt am Main', iata='FRA', scheduled=scheduled,
            actual=dep_actual, terminal=terminal, gate=gate,
        ),
        arrival=FlightEndpoint(airport='Berlin Brandenburg', iata='BER', actual=arr_actual),
        status=status,
        aircraft=AircraftDetails(registration=registration, iata='A320', icao='A320'),
    )


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def session_factory(tmp_path):
    engine = make_engine(f'sqlite:///{tmp_path}/schedules.db')
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def schedule_store(session_factory):
    return ScheduleStore(session_factory)
