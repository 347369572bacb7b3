"""Tests for the geodesic helpers used by movement analysis."""
import pytest

from seatime.utils.geo import haversine_nm, max_coordinate_delta


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_nm(50.0, -1.0, 50.0, -1.0) == pytest.approx(0.0)

    def test_one_degree_latitude_is_about_sixty_nm(self):
        assert haversine_nm(0.0, 0.0, 1.0, 0.0) == pytest.approx(60.04, abs=0.01)

    def test_longitude_shrinks_towards_the_pole(self):
        at_equator = haversine_nm(0.0, 0.0, 0.0, 1.0)
        at_sixty = haversine_nm(60.0, 0.0, 60.0, 1.0)
        assert at_sixty == pytest.approx(at_equator / 2, rel=0.01)

    def test_symmetric(self):
        a = haversine_nm(50.0, -1.0, 51.2, 2.3)
        b = haversine_nm(51.2, 2.3, 50.0, -1.0)
        assert a == pytest.approx(b)


class TestMaxCoordinateDelta:
    def test_takes_larger_of_lat_and_lon(self):
        assert max_coordinate_delta(50.0, -1.0, 50.05, -1.2) == pytest.approx(0.2)

    def test_direction_does_not_matter(self):
        assert max_coordinate_delta(50.3, -1.0, 50.0, -1.0) == pytest.approx(0.3)
