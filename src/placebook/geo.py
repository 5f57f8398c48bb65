"""
Geo math - great-circle distances between GPS fixes.

Everything here is pure: no I/O, no logging, no validation beyond what is
asked for. NaN in gives NaN out; callers validate coordinates upstream with
is_valid_coordinate().
"""

import math

# Mean Earth radius in meters
EARTH_RADIUS_M = 6_371_000.0


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Haversine distance between two coordinates.

    Args:
        lat1, lon1: First point in decimal degrees
        lat2, lon2: Second point in decimal degrees

    Returns:
        Distance in meters (symmetric, never negative)
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    # Rounding can push a fraction above 1.0 for antipodal points
    if a > 1.0:
        a = 1.0
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def is_valid_coordinate(latitude, longitude) -> bool:
    """True if both values are finite numbers within lat/lon range."""
    for value in (latitude, longitude):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if not math.isfinite(value):
            return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


def within_radius(
    origin_lat: float,
    origin_lon: float,
    lat: float,
    lon: float,
    radius_m: float,
) -> bool:
    """Check whether (lat, lon) lies within radius_m of the origin (inclusive)."""
    return distance_meters(origin_lat, origin_lon, lat, lon) <= radius_m
