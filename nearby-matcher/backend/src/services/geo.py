from __future__ import annotations

from typing import Optional

from models import Coordinates
from utils import haversine_m


def distance_meters(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance between two points, in meters.

    Symmetric and zero for identical points. Inputs must be finite degrees;
    callers validate upstream.
    """
    return haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)


def optional_distance(a: Optional[Coordinates], b: Optional[Coordinates]) -> Optional[float]:
    if a is None or b is None:
        return None
    return distance_meters(a, b)
