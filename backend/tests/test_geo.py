"""
Tests for geo helpers.

Run with: cd backend && pytest tests/test_geo.py -v
"""
import math

import pytest

from app.services.geo import (
    EARTH_RADIUS_MILES,
    BoundingBox,
    bounding_box,
    describe_distance,
    haversine_distance,
)

SAN_FRANCISCO = (37.7749, -122.4194)
OAKLAND = (37.8044, -122.2712)
LOS_ANGELES = (34.0522, -118.2437)


class TestHaversineDistance:
    """Tests for great-circle distance."""

    def test_identity_is_zero(self):
        """Distance from a point to itself is zero."""
        assert haversine_distance(*SAN_FRANCISCO, *SAN_FRANCISCO) == 0

    def test_symmetric(self):
        """Swapping the points gives the same distance."""
        forward = haversine_distance(*SAN_FRANCISCO, *LOS_ANGELES)
        backward = haversine_distance(*LOS_ANGELES, *SAN_FRANCISCO)
        assert forward == pytest.approx(backward)

    def test_san_francisco_to_oakland(self):
        """Bay crossing is a little over 8 miles as the crow flies."""
        distance = haversine_distance(*SAN_FRANCISCO, *OAKLAND)
        assert 8.3 < distance < 8.4

    def test_san_francisco_to_los_angeles(self):
        distance = haversine_distance(*SAN_FRANCISCO, *LOS_ANGELES)
        assert 340 < distance < 355

    def test_one_degree_latitude(self):
        """One degree along a meridian is R·π/180 miles."""
        distance = haversine_distance(0, 0, 1, 0)
        assert distance == pytest.approx(EARTH_RADIUS_MILES * math.pi / 180, rel=1e-9)

    def test_antipodal_points(self):
        """Opposite sides of the globe are half the circumference apart."""
        distance = haversine_distance(0, 0, 0, 180)
        assert distance == pytest.approx(EARTH_RADIUS_MILES * math.pi, rel=1e-9)

    def test_nan_propagates(self):
        assert math.isnan(haversine_distance(float("nan"), 0, 0, 0))


class TestBoundingBox:
    """Tests for the rectangular pre-filter."""

    def test_box_spans(self):
        """Latitude span is R/69 degrees, longitude span widens with latitude."""
        lat, lon = SAN_FRANCISCO
        box = bounding_box(lat, lon, 69)

        assert box.min_lat == pytest.approx(lat - 1)
        assert box.max_lat == pytest.approx(lat + 1)
        lon_span = 1 / math.cos(math.radians(lat))
        assert box.min_lon == pytest.approx(lon - lon_span)
        assert box.max_lon == pytest.approx(lon + lon_span)
        assert box.crosses_antimeridian is False

    def test_box_contains_points_within_radius(self):
        """Every point within the radius is inside the box."""
        lat, lon = SAN_FRANCISCO
        box = bounding_box(lat, lon, 10)
        assert box.contains(*OAKLAND)
        assert not box.contains(*LOS_ANGELES)

    def test_box_is_superset_in_corners(self):
        """Box corners are inside the box but outside the radius."""
        lat, lon = SAN_FRANCISCO
        box = bounding_box(lat, lon, 50)
        corner = (lat + 0.7, lon + 0.9)

        assert box.contains(*corner)
        assert haversine_distance(lat, lon, *corner) > 50

    def test_near_pole_spans_all_longitudes(self):
        """A box touching a pole covers every longitude and is clamped."""
        box = bounding_box(89.9, 10.0, 50)

        assert box.max_lat == 90.0
        assert box.min_lon == -180.0
        assert box.max_lon == 180.0
        assert box.contains(89.95, -170.0)

    def test_exact_pole(self):
        box = bounding_box(-90.0, 0.0, 10)
        assert box.min_lat == -90.0
        assert (box.min_lon, box.max_lon) == (-180.0, 180.0)

    def test_crossing_antimeridian_wraps(self):
        """A box east of 180° wraps to negative longitudes and is flagged."""
        box = bounding_box(0.0, 179.9, 50)

        assert box.crosses_antimeridian is True
        assert box.min_lon == pytest.approx(179.9 - 50 / 69)
        assert box.max_lon == pytest.approx(179.9 + 50 / 69 - 360)
        assert box.contains(0.0, -179.8)
        assert box.contains(0.0, 179.5)
        assert not box.contains(0.0, 0.0)

    def test_crossing_antimeridian_westward(self):
        box = bounding_box(0.0, -179.9, 50)
        assert box.crosses_antimeridian is True
        assert box.contains(0.0, 179.8)

    def test_huge_radius_spans_all_longitudes(self):
        box = bounding_box(60.0, 0.0, 10000)
        assert (box.min_lon, box.max_lon) == (-180.0, 180.0)

    def test_plain_box_contains(self):
        box = BoundingBox(min_lat=0, max_lat=1, min_lon=0, max_lon=1)
        assert box.contains(0.5, 0.5)
        assert not box.contains(1.5, 0.5)
        assert not box.contains(0.5, -0.1)


def test_describe_distance():
    assert describe_distance(8.3456) == "8.3 miles away"
