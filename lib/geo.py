# =============================================================================
# lib/geo.py - Geographic Helpers
# =============================================================================
# Great-circle distance and the coverage box used by the nearby search.
# The marketplace only operates in mainland Portugal.
# =============================================================================

import math

EARTH_RADIUS_KM = 6371.0

# Mainland Portugal bounding box
PORTUGAL_LAT_RANGE = (36.8, 42.2)
PORTUGAL_LON_RANGE = (-9.6, -6.0)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Distance between two coordinates in kilometres.

    Example:
        haversine_km(38.7223, -9.1393, 41.1579, -8.6291)  # Lisbon -> Porto, ~274 km
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def is_within_portugal(lat: float, lon: float) -> bool:
    """Check the point lies inside the service area (inclusive bounds)."""
    return (
        PORTUGAL_LAT_RANGE[0] <= lat <= PORTUGAL_LAT_RANGE[1]
        and PORTUGAL_LON_RANGE[0] <= lon <= PORTUGAL_LON_RANGE[1]
    )
