"""Tests for geo helpers — distance, map projection and offsets."""

from __future__ import annotations

import pytest

from swapnet_sim.engine.geo import (
    DELHI_NCR_BOUNDS,
    distance_km,
    geo_to_percent,
    haversine_km,
    interpolate,
    offset_km,
    percent_to_geo,
)
from swapnet_sim.models import GeoPosition

CP = GeoPosition(lat=28.6315, lng=77.2167)
NOIDA = GeoPosition(lat=28.5708, lng=77.3261)


class TestDistance:

    def test_same_point_is_zero(self):
        assert haversine_km(CP.lat, CP.lng, CP.lat, CP.lng) == 0.0

    def test_connaught_place_to_noida(self):
        d = distance_km(CP, NOIDA)
        assert 11.0 < d < 14.0

    def test_symmetric(self):
        assert distance_km(CP, NOIDA) == pytest.approx(distance_km(NOIDA, CP))


class TestProjection:

    def test_centre_of_bounds_maps_to_fifty(self):
        lat = (DELHI_NCR_BOUNDS.north + DELHI_NCR_BOUNDS.south) / 2
        lng = (DELHI_NCR_BOUNDS.east + DELHI_NCR_BOUNDS.west) / 2
        pos = geo_to_percent(lat, lng)
        assert pos.x == pytest.approx(50.0)
        assert pos.y == pytest.approx(50.0)

    def test_clamped_to_map_margin(self):
        pos = geo_to_percent(30.0, 70.0)
        assert pos.x == 5.0
        assert pos.y == 5.0
        pos = geo_to_percent(27.0, 80.0)
        assert pos.x == 95.0
        assert pos.y == 95.0

    def test_percent_to_geo_inverts_inside_margin(self):
        geo = percent_to_geo(30.0, 60.0)
        pos = geo_to_percent(geo.lat, geo.lng)
        assert pos.x == pytest.approx(30.0)
        assert pos.y == pytest.approx(60.0)

    def test_bounds_contains(self):
        assert DELHI_NCR_BOUNDS.contains(CP.lat, CP.lng)
        assert not DELHI_NCR_BOUNDS.contains(19.07, 72.87)  # Mumbai


class TestOffsets:

    def test_one_km_north(self):
        moved = offset_km(CP, east_km=0.0, north_km=1.0)
        assert distance_km(CP, moved) == pytest.approx(1.0, abs=1e-3)
        assert moved.lat > CP.lat

    def test_one_km_east(self):
        moved = offset_km(CP, east_km=1.0, north_km=0.0)
        assert distance_km(CP, moved) == pytest.approx(1.0, abs=1e-3)
        assert moved.lng > CP.lng

    def test_interpolate_midpoint(self):
        mid = interpolate(CP, NOIDA, 0.5)
        assert mid.lat == pytest.approx((CP.lat + NOIDA.lat) / 2)
        assert mid.lng == pytest.approx((CP.lng + NOIDA.lng) / 2)

    def test_interpolate_clamps_fraction(self):
        end = interpolate(CP, NOIDA, 1.7)
        assert (end.lat, end.lng) == pytest.approx((NOIDA.lat, NOIDA.lng))
        assert interpolate(CP, NOIDA, -0.2) == CP
