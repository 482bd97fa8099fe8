import math
from decimal import Decimal

import pytest

from utils.distance_calculator import DistanceCalculator, EARTH_RADIUS_KM

OSLO = (59.9139, 10.7522)


def test_distance_to_itself_is_zero():
    assert DistanceCalculator.get_distance_meters(*OSLO, *OSLO) == 0


def test_one_degree_along_a_meridian():
    expected = EARTH_RADIUS_KM * math.pi / 180
    assert DistanceCalculator.get_distance_km(0, 0, 1, 0) == pytest.approx(expected)


def test_accepts_decimal_and_string_coordinates():
    assert DistanceCalculator.get_distance_km(Decimal('59.9139'), '10.7522', *OSLO) == 0


@pytest.mark.parametrize('tolerance', [1, 50, 1000])
def test_same_point_is_within_any_positive_tolerance(tolerance):
    assert DistanceCalculator.is_within_tolerance(OSLO, OSLO, tolerance)


def test_tolerance_boundary():
    # 0.0004 degrees of latitude is roughly 44 m, 0.0005 roughly 56 m
    near = (OSLO[0] + 0.0004, OSLO[1])
    far = (OSLO[0] + 0.0005, OSLO[1])
    assert DistanceCalculator.is_within_tolerance(near, OSLO, 50)
    assert not DistanceCalculator.is_within_tolerance(far, OSLO, 50)


def test_default_tolerance_is_fifty_meters():
    assert DistanceCalculator.is_within_tolerance((OSLO[0] + 0.0004, OSLO[1]), OSLO)
    assert not DistanceCalculator.is_within_tolerance((OSLO[0] + 0.0005, OSLO[1]), OSLO)
