"""Great-circle distance for location verification."""

import math

from .types import Coordinates

EARTH_RADIUS_METERS = 6_371_000


def haversine_distance(coord1: Coordinates, coord2: Coordinates) -> float:
    """Distance in meters between two (latitude, longitude) pairs."""
    lat1, lon1 = coord1
    lat2, lon2 = coord2

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c
