import math

import pytest

from rentnear.core.geo import GeoPoint, haversine_m, has_valid_coordinates, is_valid_coordinate


def test_haversine_london_paris_within_half_percent_of_reference():
    london = GeoPoint(lat=51.5074, lon=-0.1278)
    paris = GeoPoint(lat=48.8566, lon=2.3522)

    d = haversine_m(london, paris)

    # Published great-circle distance between the two city centres: ~343.5 km.
    assert d == pytest.approx(343_500, rel=0.005)


def test_haversine_one_degree_of_longitude_on_equator():
    d = haversine_m(GeoPoint(lat=0.0, lon=0.0), GeoPoint(lat=0.0, lon=1.0))
    assert d == pytest.approx(6_371_000 * math.pi / 180, rel=1e-9)


def test_haversine_is_symmetric_and_zero_for_same_point():
    a = GeoPoint(lat=12.9716, lon=77.5946)
    b = GeoPoint(lat=13.05, lon=77.60)
    assert haversine_m(a, a) == 0
    assert haversine_m(a, b) == pytest.approx(haversine_m(b, a))


def test_coordinate_validation_rejects_nan_none_and_bools():
    assert is_valid_coordinate(12.5)
    assert is_valid_coordinate(0)
    assert not is_valid_coordinate(float("nan"))
    assert not is_valid_coordinate(float("inf"))
    assert not is_valid_coordinate(None)
    assert not is_valid_coordinate(True)
    assert not is_valid_coordinate("12.5")
    assert has_valid_coordinates(1.0, 2.0)
    assert not has_valid_coordinates(1.0, None)
