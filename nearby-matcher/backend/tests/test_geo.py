import math

from models import Coordinates
from services.geo import distance_meters, optional_distance
from utils import feet_to_meters, meters_to_feet


def test_distance_is_symmetric():
    pairs = [
        (Coordinates(47.6062, -122.3321), Coordinates(47.6205, -122.3493)),
        (Coordinates(-33.8688, 151.2093), Coordinates(51.5074, -0.1278)),
        (Coordinates(0.0, 179.9), Coordinates(0.0, -179.9)),
    ]
    for a, b in pairs:
        assert math.isclose(distance_meters(a, b), distance_meters(b, a), rel_tol=1e-12)


def test_distance_to_self_is_zero():
    a = Coordinates(31.2304, 121.4737)  # Shanghai
    assert distance_meters(a, a) == 0.0


def test_small_offset_at_equator():
    origin = Coordinates(0.0, 0.0)
    d = distance_meters(origin, Coordinates(0.0, 0.00005))
    assert 5.5 < d < 5.6
    far = distance_meters(origin, Coordinates(0.0, 0.001))
    assert 111.0 < far < 111.4


def test_antipodal_points_are_finite():
    d = distance_meters(Coordinates(0.0, 0.0), Coordinates(0.0, 180.0))
    assert math.isfinite(d)
    assert math.isclose(d, math.pi * 6371000.0, rel_tol=1e-9)


def test_optional_distance_needs_both_points():
    a = Coordinates(1.0, 1.0)
    assert optional_distance(a, None) is None
    assert optional_distance(None, a) is None
    assert optional_distance(a, a) == 0.0


def test_feet_conversion_round_trip_of_default_radius():
    radius_m = feet_to_meters(20)
    assert math.isclose(radius_m, 6.096, abs_tol=1e-3)
    assert math.isclose(meters_to_feet(radius_m), 20.0)
