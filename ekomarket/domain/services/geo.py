"""Great-circle distance helpers"""

import math
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar

from ..value_objects.location import GeoPoint, validate_coordinate


EARTH_RADIUS_KM = 6371.0

T = TypeVar("T")


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in kilometers, rounded to one decimal.

    Raises InvalidCoordinate for non-finite or out-of-range input.
    """
    validate_coordinate(lat1, lon1)
    validate_coordinate(lat2, lon2)

    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 1)


def distance_between(a: GeoPoint, b: GeoPoint) -> float:
    return calculate_distance(a.latitude, a.longitude, b.latitude, b.longitude)


def find_within_radius(
    origin: GeoPoint,
    items: Iterable[T],
    radius_km: float,
    location_of: Callable[[T], Optional[GeoPoint]],
) -> List[Tuple[T, float]]:
    """Keep the items whose location lies within radius_km of origin.

    Items without a location are dropped. Returns (item, distance) pairs
    sorted by distance.
    """
    matches = []
    for item in items:
        location = location_of(item)
        if location is None:
            continue
        distance = distance_between(origin, location)
        if distance <= radius_km:
            matches.append((item, distance))
    matches.sort(key=lambda pair: pair[1])
    return matches
