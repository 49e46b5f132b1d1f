import pytest
import requests

from flightzone.enrichment.schedule import parse_schedules, schedule_from_aviationstack
from flightzone.services.schedule_client import ScheduleClient, ScheduleFeedError

from conftest import FakeSession, make_response

ROW = {
    'flight_status': 'scheduled',
    'departure': {
        'airport': 'Frankfurt am Main', 'iata': 'FRA',
        'scheduled': '2024-05-03T20:00:00+00:00', 'actual': '2024-05-03T20:12:00+00:00',
        'terminal': '1', 'gate': 'A5',
    },
    'arrival': {'airport': 'Berlin Brandenburg', 'iata': 'BER'},
    'airline': {'name': 'Lufthansa', 'iata': 'LH'},
    'flight': {'iata': 'lh123', 'icao': 'DLH123'},
    'aircraft': {'registration': 'D-AIDE', 'iata': 'A320', 'icao': 'A320'},
}

DEMO_FLIGHTS = {'LH123', 'DL456', 'BA789'}


def test_schedule_from_row():
    record = schedule_from_aviationstack(ROW)

    assert record.flight_number == 'LH123'
    assert record.airline_code == 'LH'
    assert record.departure.gate == 'A5'
    assert record.aircraft.registration == 'D-AIDE'
    assert record.delay_minutes == 12


def test_row_without_flight_number_dropped():
    assert schedule_from_aviationstack({'flight': {}}) is None


def test_parse_schedules_malformed():
    assert parse_schedules({'data': None}) == []
    assert parse_schedules('nope') == []


def test_fetch_departures_params():
    session = FakeSession(lambda url, params, auth: make_response(json_body={'data': [ROW]}))
    client = ScheduleClient(api_key='key', limit=25, session=session)

    records = client.fetch_departures('FRA')

    assert [r.flight_number for r in records] == ['LH123']
    assert session.calls[0]['url'].endswith('/flights')
    assert session.calls[0]['params'] == {'access_key': 'key', 'dep_iata': 'FRA', 'limit': 25}


def test_fetch_departures_error_payload_raises():
    session = FakeSession(lambda url, params, auth: make_response(
        json_body={'error': {'code': 'invalid_access_key'}}
    ))
    with pytest.raises(ScheduleFeedError):
        ScheduleClient(api_key='key', session=session).fetch_departures('FRA')


def test_error_payload_falls_back_to_demo():
    session = FakeSession(lambda url, params, auth: make_response(
        json_body={'error': {'code': 'usage_limit_reached'}}
    ))
    records = ScheduleClient(api_key='key', session=session).get_departures('FRA')
    assert {r.flight_number for r in records} == DEMO_FLIGHTS


def test_transport_error_falls_back_to_demo():
    def handler(url, params, auth):
        raise requests.ConnectionError('unreachable')

    records = ScheduleClient(api_key='key', session=FakeSession(handler)).get_departures('FRA')
    assert {r.flight_number for r in records} == DEMO_FLIGHTS


def test_http_error_falls_back_to_demo():
    session = FakeSession(lambda url, params, auth: make_response(status_code=500))
    records = ScheduleClient(api_key='key', session=session).get_departures('FRA')
    assert {r.flight_number for r in records} == DEMO_FLIGHTS


def test_empty_result_falls_back_to_demo():
    session = FakeSession(lambda url, params, auth: make_response(json_body={'data': []}))
    records = ScheduleClient(api_key='key', session=session).get_departures('FRA')
    assert {r.flight_number for r in records} == DEMO_FLIGHTS


def test_missing_key_skips_request():
    session = FakeSession(lambda url, params, auth: make_response(json_body={'data': [ROW]}))
    records = ScheduleClient(api_key=None, session=session).get_departures('FRA')

    assert session.calls == []
    assert {r.flight_number for r in records} == DEMO_FLIGHTS


def test_demo_fallback_disabled_returns_empty():
    session = FakeSession(lambda url, params, auth: make_response(status_code=503))
    client = ScheduleClient(api_key='key', demo_fallback=False, session=session)

    assert client.get_departures('FRA') == []


def test_stats_count_requests():
    session = FakeSession(lambda url, params, auth: make_response(json_body={'data': [ROW]}))
    client = ScheduleClient(api_key='key', session=session)
    client.get_departures('FRA')

    assert client.stats['requests_made'] == 1
    assert client.stats['api_configured'] is True
    assert client.stats['last_request_time'] > 0


def test_stats_before_any_request():
    client = ScheduleClient(api_key=None, session=FakeSession(lambda url, params, auth: None))
    client.get_departures('FRA')

    assert client.stats['requests_made'] == 0
    assert client.stats['last_request_time'] == 0
