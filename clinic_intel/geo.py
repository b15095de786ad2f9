"""
Great-circle distance on a spherical-earth approximation.
"""

import math

# Earth's mean radius in kilometers
EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lng1: First point coordinates in degrees
        lat2, lng2: Second point coordinates in degrees

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lng = math.radians(lng2 - lng1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lng / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Same as haversine_distance, in meters (unrounded)."""
    return haversine_distance(lat1, lng1, lat2, lng2) * 1000.0


def offset_north(lat: float, lng: float, meters: float) -> tuple:
    """
    Point `meters` due north of (lat, lng) along the same meridian.

    Exact under the spherical model, so haversine_meters() of the pair
    returns `meters` back (up to float error).
    """
    delta_deg = math.degrees(meters / (EARTH_RADIUS_KM * 1000.0))
    return lat + delta_deg, lng
