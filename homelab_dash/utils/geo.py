# homelab_dash/utils/geo.py
import math
from typing import Sequence

EARTH_RADIUS_M = 6371000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in metres on a spherical Earth."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def total_distance_km(points: Sequence) -> float:
    """Sum of consecutive-point distances, in km rounded to one decimal.

    Points only need `latitude` and `longitude` attributes.
    """
    total = 0.0
    for i in range(1, len(points)):
        a = points[i - 1]
        b = points[i]
        total += haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)
    return math.floor(total / 100 + 0.5) / 10
