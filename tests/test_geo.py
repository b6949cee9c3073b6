from __future__ import annotations

import pytest

from pyordertrack.geo import Bounds, differs_by_more_than, distance_m, haversine_km, interpolate
from pyordertrack.models.position import GeoPoint

_STORE = GeoPoint(latitude=20.2961, longitude=85.8245)


def test_haversine_zero_for_same_point() -> None:
    assert haversine_km(20.0, 85.0, 20.0, 85.0) == 0.0


def test_haversine_one_degree_of_latitude() -> None:
    assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.195, abs=0.01)


def test_distance_m_small_offsets() -> None:
    five = GeoPoint(latitude=_STORE.latitude + 0.000045, longitude=_STORE.longitude)
    fifty = GeoPoint(latitude=_STORE.latitude + 0.00045, longitude=_STORE.longitude)
    assert distance_m(_STORE, five) == pytest.approx(5.0, abs=0.1)
    assert distance_m(_STORE, fifty) == pytest.approx(50.0, abs=0.5)


def test_differs_by_more_than_checks_each_axis() -> None:
    near = GeoPoint(latitude=_STORE.latitude + 0.00005, longitude=_STORE.longitude - 0.00005)
    moved_lon = GeoPoint(latitude=_STORE.latitude, longitude=_STORE.longitude + 0.0002)

    assert not differs_by_more_than(_STORE, near, 0.0001)
    assert differs_by_more_than(_STORE, moved_lon, 0.0001)
    assert differs_by_more_than(None, _STORE, 0.0001)
    assert not differs_by_more_than(None, None, 0.0001)


def test_interpolate_clamps_fraction() -> None:
    customer = GeoPoint(latitude=20.3, longitude=85.83)
    assert interpolate(_STORE, customer, 0.0) == _STORE
    end = interpolate(_STORE, customer, 2.0)
    assert end.latitude == pytest.approx(customer.latitude)
    assert end.longitude == pytest.approx(customer.longitude)
    mid = interpolate(_STORE, customer, 0.5)
    assert mid.latitude == pytest.approx((20.2961 + 20.3) / 2)


def test_bounds_around_points() -> None:
    customer = GeoPoint(latitude=20.30, longitude=85.80)
    bounds = Bounds.around([_STORE, customer])

    assert bounds is not None
    assert bounds.south_west == GeoPoint(latitude=20.2961, longitude=85.80)
    assert bounds.north_east == GeoPoint(latitude=20.30, longitude=85.8245)
    assert Bounds.around([]) is None
