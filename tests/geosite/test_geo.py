"""Tests for spatial math: haversine, path length, polygon area, UTM."""

import math

import pytest

from geosite.geo import (
    EARTH_RADIUS_M,
    format_area,
    format_distance,
    haversine_distance,
    mean_center,
    meters_per_pixel,
    midpoint,
    path_length,
    polygon_area,
    utm_hemisphere,
    utm_zone,
)


@pytest.mark.unit
class TestHaversine:
    def test_identical_points_zero(self):
        assert haversine_distance((51.5154, -0.1755), (51.5154, -0.1755)) == 0.0

    def test_symmetric(self):
        a, b = (51.5154, -0.1755), (51.5200, -0.1600)
        assert haversine_distance(a, b) == pytest.approx(haversine_distance(b, a))

    def test_one_hundredth_degree_latitude(self):
        """0.01 degrees along a meridian is R * radians(0.01), about 1112 m."""
        d = haversine_distance((0.0, 0.0), (0.01, 0.0))
        assert d == pytest.approx(EARTH_RADIUS_M * math.radians(0.01))
        assert 1100 < d < 1120

    def test_antipodes_half_circumference(self):
        d = haversine_distance((0.0, 0.0), (0.0, 180.0))
        assert d == pytest.approx(math.pi * EARTH_RADIUS_M)

    def test_nan_propagates(self):
        assert math.isnan(haversine_distance((float("nan"), 0.0), (0.0, 0.0)))


@pytest.mark.unit
class TestPathLength:
    def test_sum_of_legs(self):
        pts = [(51.5154, -0.1755), (51.5160, -0.1740), (51.5170, -0.1760)]
        expected = haversine_distance(pts[0], pts[1]) + haversine_distance(pts[1], pts[2])
        assert path_length(pts) == pytest.approx(expected)

    def test_two_points_equals_haversine(self):
        a, b = (51.5, -0.17), (51.51, -0.16)
        assert path_length([a, b]) == pytest.approx(haversine_distance(a, b))

    @pytest.mark.parametrize("pts", [[], [(51.5, -0.17)]])
    def test_too_few_points_raises(self, pts):
        with pytest.raises(ValueError):
            path_length(pts)


@pytest.mark.unit
class TestPolygonArea:
    def test_small_square_at_equator(self):
        square = [(0.0, 0.0), (0.0, 0.01), (0.01, 0.01), (0.01, 0.0)]
        expected = (math.radians(0.01) * EARTH_RADIUS_M) ** 2
        assert polygon_area(square) == pytest.approx(expected, rel=1e-9)
        assert 1.2e6 < polygon_area(square) < 1.3e6

    def test_orientation_independent(self):
        square = [(0.0, 0.0), (0.0, 0.01), (0.01, 0.01), (0.01, 0.0)]
        assert polygon_area(square) == pytest.approx(polygon_area(list(reversed(square))))

    def test_explicit_closing_point_same_area(self):
        tri = [(0.0, 0.0), (0.0, 0.01), (0.01, 0.0)]
        assert polygon_area(tri + [tri[0]]) == pytest.approx(polygon_area(tri))

    def test_degenerate_collinear_is_zero(self):
        assert polygon_area([(0.0, 0.0), (0.0, 0.01), (0.0, 0.02)]) == pytest.approx(0.0)

    @pytest.mark.parametrize("pts", [[], [(0.0, 0.0)], [(0.0, 0.0), (0.0, 1.0)]])
    def test_too_few_points_raises(self, pts):
        with pytest.raises(ValueError):
            polygon_area(pts)


@pytest.mark.unit
class TestUTM:
    def test_london_is_zone_30(self):
        assert utm_zone(-0.1755) == 30

    def test_east_of_greenwich_is_zone_31(self):
        assert utm_zone(0.5) == 31

    def test_zone_boundary_at_greenwich(self):
        assert utm_zone(-0.175) == 30
        assert utm_zone(0.0) == 31

    def test_range_edges(self):
        assert utm_zone(-180.0) == 1
        assert utm_zone(179.9) == 60

    def test_hemisphere(self):
        assert utm_hemisphere(51.5) == "N"
        assert utm_hemisphere(0.0) == "N"
        assert utm_hemisphere(-33.9) == "S"


@pytest.mark.unit
class TestHelpers:
    def test_mean_center(self):
        assert mean_center([(0.0, 0.0), (2.0, 4.0)]) == (1.0, 2.0)

    def test_mean_center_empty(self):
        assert mean_center([]) is None

    def test_midpoint(self):
        assert midpoint((0.0, 0.0), (1.0, -1.0)) == (0.5, -0.5)

    def test_meters_per_pixel_halves_per_zoom(self):
        assert meters_per_pixel(0.0, 1) == pytest.approx(meters_per_pixel(0.0, 0) / 2)
        assert meters_per_pixel(60.0, 0) == pytest.approx(meters_per_pixel(0.0, 0) / 2)

    def test_format_distance(self):
        assert format_distance(1234.0) == "1.23 km (1234 m)"

    def test_format_area(self):
        assert format_area(1500.0) == "1500 m²"
        assert format_area(2_500_000.0) == "2.50 km²"
