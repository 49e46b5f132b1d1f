import math

import pytest

from flightzone.ingestion.geo import EARTH_RADIUS_KM
from flightzone.ingestion.zone_filter import filter_and_sort, within_zone

from conftest import FRA, position

KM_PER_DEGREE_MERIDIAN = EARTH_RADIUS_KM * math.pi / 180


def _north_of_fra(callsign, km):
    return position(callsign, lat=FRA[0] + km / KM_PER_DEGREE_MERIDIAN, lon=FRA[1])


def test_nearest_first_within_radius():
    far = _north_of_fra('FAR', 250)
    near = _north_of_fra('NEAR', 10)
    mid = _north_of_fra('MID', 60)

    result = filter_and_sort([far, near, mid], FRA, 200)

    assert [p.callsign for p, _ in result] == ['NEAR', 'MID']
    assert result[0][1] == pytest.approx(10, abs=0.01)
    assert result[1][1] == pytest.approx(60, abs=0.01)


def test_equal_distances_keep_input_order():
    a = _north_of_fra('A', 20)
    b = _north_of_fra('B', 20)

    result = filter_and_sort([a, b], FRA, 50)

    assert [p.callsign for p, _ in result] == ['A', 'B']


def test_boundary_is_inclusive():
    assert within_zone(position('AT', lat=FRA[0], lon=FRA[1]), FRA, 0)


def test_within_zone():
    assert within_zone(_north_of_fra('IN', 40), FRA, 50)
    assert not within_zone(_north_of_fra('OUT', 60), FRA, 50)


def test_within_zone_agrees_with_filter_at_boundary():
    positions = [_north_of_fra('EDGE1', 37.123456789), position('EDGE2', lat=50.41, lon=8.93)]

    for pos in positions:
        [(_, distance)] = filter_and_sort([pos], FRA, 1000)
        assert within_zone(pos, FRA, distance)
        assert filter_and_sort([pos], FRA, distance) != []
        assert within_zone(pos, FRA, distance) == bool(filter_and_sort([pos], FRA, distance))


def test_empty_input():
    assert filter_and_sort([], FRA, 50) == []
