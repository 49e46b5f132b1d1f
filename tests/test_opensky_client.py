import pytest
import requests

from flightzone.ingestion.geo import ZoneTiler
from flightzone.ingestion.opensky_client import OpenSkyClient, StateVector, parse_states

from conftest import FakeSession, make_response, state

FRA = (50.0379, 8.5622)


def test_state_vector_from_array():
    sv = StateVector.from_array(state(callsign='DLH400 ', lat=50.1, lon=8.6))

    assert sv.icao24 == 'abc123'
    assert sv.callsign == 'DLH400 '
    assert sv.latitude == 50.1
    assert sv.longitude == 8.6
    assert sv.has_position()


def test_state_vector_short_array_rejected():
    assert StateVector.from_array(['abc123', 'DLH400']) is None


def test_state_without_coordinates_has_no_position():
    sv = StateVector.from_array(state(lat=None, lon=None))
    assert sv is not None
    assert not sv.has_position()


def test_parse_states_drops_nulls():
    payload = {'time': 1714765200, 'states': [state(), None, state(callsign='BAW12 ')]}
    states = parse_states(payload)
    assert [s.callsign for s in states] == ['DLH400 ', 'BAW12 ']


@pytest.mark.parametrize('payload', [None, [], 'oops', {'time': 1}, {'states': None}, {'states': 'x'}])
def test_parse_states_malformed_payload(payload):
    assert parse_states(payload) == []


def test_get_states_returns_api_time():
    session = FakeSession(lambda url, params, auth: make_response(
        json_body={'time': 1714765200, 'states': [state()]}
    ))
    client = OpenSkyClient(session=session)

    api_time, states = client.get_states()

    assert api_time == 1714765200
    assert len(states) == 1
    assert session.calls[0]['url'].endswith('/states/all')
    assert session.calls[0]['auth'] is None


def test_get_states_with_bbox_sends_params():
    session = FakeSession(lambda url, params, auth: make_response(json_body={'time': 1, 'states': []}))
    client = OpenSkyClient(session=session)
    box = ZoneTiler().tile(*FRA, 50)[0]

    client.get_states(bbox=box)

    assert set(session.calls[0]['params']) == {'lamin', 'lomin', 'lamax', 'lomax'}


def test_non_json_body_yields_no_states():
    session = FakeSession(lambda url, params, auth: make_response(text='<html>busy</html>'))
    _, states = OpenSkyClient(session=session).get_states()
    assert states == []


def test_rejected_credentials_retry_anonymously():
    def handler(url, params, auth):
        if auth is not None:
            return make_response(status_code=401)
        return make_response(json_body={'time': 5, 'states': [state()]})

    session = FakeSession(handler)
    client = OpenSkyClient(username='user', password='secret', session=session)

    _, states = client.get_states()

    assert len(states) == 1
    assert len(session.calls) == 2
    assert session.calls[0]['auth'] is not None
    assert session.calls[1]['auth'] is None


def test_authenticated_success_does_not_retry():
    session = FakeSession(lambda url, params, auth: make_response(json_body={'time': 5, 'states': []}))
    client = OpenSkyClient(username='user', password='secret', session=session)

    client.get_states()

    assert len(session.calls) == 1


def test_both_attempts_failing_raises():
    def handler(url, params, auth):
        if auth is not None:
            return make_response(status_code=401)
        raise requests.ConnectionError('network down')

    client = OpenSkyClient(username='user', password='secret', session=FakeSession(handler))

    with pytest.raises(requests.ConnectionError):
        client.get_states()


def test_anonymous_failure_raises_http_error():
    client = OpenSkyClient(session=FakeSession(lambda url, params, auth: make_response(status_code=429)))

    with pytest.raises(requests.HTTPError):
        client.get_states()


class TestTiledFetch:

    def test_concatenates_tiles(self):
        session = FakeSession(lambda url, params, auth: make_response(
            json_body={'time': 7, 'states': [state()]}
        ))
        client = OpenSkyClient(session=session)

        api_time, states = client.get_states_in_zone(*FRA, 1200, ZoneTiler())

        assert len(session.calls) == 9
        assert len(states) == 9
        assert api_time == 7

    def test_failed_tile_is_skipped(self):
        calls = {'n': 0}

        def handler(url, params, auth):
            calls['n'] += 1
            if calls['n'] == 1:
                return make_response(status_code=500)
            return make_response(json_body={'time': 7, 'states': [state()]})

        client = OpenSkyClient(session=FakeSession(handler))
        _, states = client.get_states_in_zone(*FRA, 1200, ZoneTiler())

        assert len(states) == 8

    def test_all_tiles_failing_raises(self):
        client = OpenSkyClient(session=FakeSession(lambda url, params, auth: make_response(status_code=503)))

        with pytest.raises(requests.HTTPError):
            client.get_states_in_zone(*FRA, 1200, ZoneTiler())
