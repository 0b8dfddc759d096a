"""
Geo Service - Great-circle distance and bounding-box pre-filtering

Matching narrows the user population in two passes:
    1. Bounding box: a cheap rectangular latitude/longitude range test that
       the database can answer from indexed columns.
    2. Haversine: exact great-circle distance on the surviving rows.

The box is always a superset of the search circle, so it is never the final
accept/reject test.

Conversions:
    - 1 degree of latitude ≈ 69 miles
    - 1 degree of longitude ≈ 69 × cos(latitude) miles

Edge Cases:
    - Near the poles cos(latitude) → 0; when the box touches a pole it spans
      every longitude and the latitude range is clamped to [-90, 90].
    - Boxes that cross the antimeridian are wrapped and flagged so the store
      can query the two longitude segments with an OR.
"""

import math
from dataclasses import dataclass

EARTH_RADIUS_MILES = 3959.0
MILES_PER_DEGREE_LAT = 69.0

# Below this cos(latitude) the longitude span is treated as unbounded
_MIN_COS_LATITUDE = 1e-9


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points in miles.

    Inputs are signed decimal degrees and are not validated: NaN inputs
    produce NaN.

    Formula:
        a = sin²(Δφ/2) + cos φ1 · cos φ2 · sin²(Δλ/2)
        d = 2R · atan2(√a, √(1−a))
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_MILES * c


@dataclass(frozen=True)
class BoundingBox:
    """
    Rectangular coordinate range around a search center.

    When crosses_antimeridian is True the longitude range is the union
    [min_lon, 180] ∪ [-180, max_lon] instead of [min_lon, max_lon].
    """

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float
    crosses_antimeridian: bool = False

    def contains(self, lat: float, lon: float) -> bool:
        if not (self.min_lat <= lat <= self.max_lat):
            return False
        if self.crosses_antimeridian:
            return lon >= self.min_lon or lon <= self.max_lon
        return self.min_lon <= lon <= self.max_lon


def bounding_box(lat: float, lon: float, radius_miles: float) -> BoundingBox:
    """
    Compute the pre-filter box for a center point and radius.

    Args:
        lat: Center latitude in decimal degrees
        lon: Center longitude in decimal degrees
        radius_miles: Search radius

    Returns:
        BoundingBox that contains every point within radius_miles
    """
    lat_span = radius_miles / MILES_PER_DEGREE_LAT
    min_lat = lat - lat_span
    max_lat = lat + lat_span

    cos_lat = math.cos(math.radians(lat))
    if max_lat >= 90 or min_lat <= -90 or cos_lat < _MIN_COS_LATITUDE:
        return BoundingBox(
            min_lat=max(min_lat, -90.0),
            max_lat=min(max_lat, 90.0),
            min_lon=-180.0,
            max_lon=180.0,
        )

    lon_span = radius_miles / (MILES_PER_DEGREE_LAT * cos_lat)
    if lon_span >= 180:
        return BoundingBox(min_lat=min_lat, max_lat=max_lat, min_lon=-180.0, max_lon=180.0)

    min_lon = lon - lon_span
    max_lon = lon + lon_span
    crosses = False
    if min_lon < -180:
        min_lon += 360
        crosses = True
    elif max_lon > 180:
        max_lon -= 360
        crosses = True

    return BoundingBox(
        min_lat=min_lat,
        max_lat=max_lat,
        min_lon=min_lon,
        max_lon=max_lon,
        crosses_antimeridian=crosses,
    )


def describe_distance(distance_miles: float) -> str:
    """Human-readable distance used in match reasons."""
    return f"{distance_miles:.1f} miles away"
