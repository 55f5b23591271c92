"""Great-circle distance on a spherical Earth."""

from __future__ import annotations

import math

from pet_directory.models.business import Point

EARTH_RADIUS_KM = 6371.0


def distance_km(a: Point, b: Point) -> float:
    """Haversine distance between two points, in kilometres."""
    lat_a = math.radians(a.latitude)
    lat_b = math.radians(b.latitude)
    delta_lat = lat_b - lat_a
    delta_lng = math.radians(b.longitude - a.longitude)

    h = math.sin(delta_lat / 2) ** 2 + math.cos(lat_a) * math.cos(lat_b) * math.sin(delta_lng / 2) ** 2
    # Rounding can push h a hair past 1 for antipodal points.
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def km_to_radians(kilometres: float) -> float:
    """Angular distance used by spherical store queries (``$centerSphere``)."""
    return kilometres / EARTH_RADIUS_KM
