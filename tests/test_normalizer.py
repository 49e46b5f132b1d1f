from datetime import datetime, timezone

import pytest

from flightzone.ingestion.normalizer import (
    UNKNOWN_CALLSIGN,
    dedupe,
    fingerprint,
    normalize_state,
    normalize_states,
)
from flightzone.ingestion.opensky_client import StateVector

from conftest import NOW, position, state


def _sv(**kwargs) -> StateVector:
    return StateVector.from_array(state(**kwargs))


def test_unit_conversion():
    pos = normalize_state(_sv(altitude_m=1000.0, velocity=100.0))

    assert pos.altitude_ft == pytest.approx(3280.84)
    assert pos.velocity_kts == pytest.approx(194.384)


def test_callsign_trimmed_and_uppercased():
    assert normalize_state(_sv(callsign=' dlh400  ')).callsign == 'DLH400'


def test_missing_fields_get_defaults():
    raw = [None] * 17
    raw[5], raw[6] = 8.5, 50.0
    pos = normalize_state(StateVector.from_array(raw), now=NOW)

    assert pos.callsign == UNKNOWN_CALLSIGN
    assert pos.altitude_ft == 0.0
    assert pos.velocity_kts == 0.0
    assert pos.heading == 0.0
    assert pos.vertical_rate == 0.0
    assert pos.on_ground is False
    assert pos.observed_at == NOW
    assert pos.last_contact is None


def test_negative_altitude_clamped_to_zero():
    assert normalize_state(_sv(altitude_m=-30.0)).altitude_ft == 0.0


def test_coordinates_clamped():
    pos = normalize_state(_sv(lat=95.0, lon=-200.0))
    assert pos.latitude == 90.0
    assert pos.longitude == -180.0


def test_observed_at_from_last_contact():
    pos = normalize_state(_sv(last_contact=1714765200))
    assert pos.observed_at == datetime.fromtimestamp(1714765200, tz=timezone.utc)
    assert pos.last_contact == 1714765200


def test_normalize_states_shares_timestamp():
    raw = [None] * 17
    positions = normalize_states([StateVector.from_array(raw), StateVector.from_array(raw)], now=NOW)
    assert [p.observed_at for p in positions] == [NOW, NOW]


def test_fingerprint_rounds_to_three_decimals():
    assert fingerprint(position('LH123', lat=50.0381, lon=8.5621)) == 'LH123_50.038_8.562'


def test_fingerprint_folds_negative_zero():
    assert fingerprint(position('X', lat=-0.0001, lon=-0.0001)) == fingerprint(position('X', lat=0.0, lon=0.0))


def test_dedupe_keeps_first_occurrence():
    first = position('LH123', lat=50.038, lon=8.562, altitude_ft=1000)
    echo = position('LH123', lat=50.0381, lon=8.5621, altitude_ft=2000)
    other = position('BA789', lat=50.038, lon=8.562)

    result = dedupe([first, echo, other])

    assert result == [first, other]


def test_dedupe_is_idempotent():
    positions = [
        position('LH123', lat=50.038, lon=8.562),
        position('LH123', lat=50.0381, lon=8.5621),
        position('LH123', lat=50.2, lon=8.562),
    ]
    once = dedupe(positions)
    assert dedupe(once) == once
    assert len(once) == 2
