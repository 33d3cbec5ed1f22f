"""
distance_engine.py
──────────────────
Haversine great-circle distances on a spherical Earth.
Points are anything exposing `lat` / `lng` (dataclasses) or dicts with
'lat' and 'lng' keys.
"""

import math
import logging

logger = logging.getLogger(__name__)

EARTH_RADIUS = {
    "mi": 3959.0,
    "km": 6371.0,
}


def _coords(p) -> tuple:
    if isinstance(p, dict):
        return p["lat"], p["lng"]
    return p.lat, p.lng


def calculate_distance(p1, p2, unit: str = "mi") -> float:
    """
    Haversine distance between two points, in statute miles or km.
    """
    R = EARTH_RADIUS[unit]
    lat1, lng1 = map(math.radians, _coords(p1))
    lat2, lng2 = map(math.radians, _coords(p2))
    dlat = lat2 - lat1
    dlng = lng2 - lng1
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return R * c


def calculate_total_distance(points: list, unit: str = "mi") -> float:
    """
    Sum of leg distances along an ordered list of points (no return leg).

    Parameters
    ----------
    points : ordered list of points, origin first and destination last
    unit   : "mi" or "km"

    Returns
    -------
    Total distance (rounded to 2 dp)
    """
    total = 0.0
    for i in range(len(points) - 1):
        seg = calculate_distance(points[i], points[i + 1], unit)
        total += seg
        logger.debug(
            f"[DistanceEngine] {getattr(points[i], 'address', '?')} → "
            f"{getattr(points[i + 1], 'address', '?')} = {seg:.1f} {unit}"
        )
    return round(total, 2)


def detour_ratio(previous, candidate, destination, unit: str = "mi") -> float:
    """
    (previous→candidate + candidate→destination) / (previous→destination).

    When previous and destination coincide the ratio is 1.0 for a
    candidate at that same spot and infinite for anything else.
    """
    direct = calculate_distance(previous, destination, unit)
    via = calculate_distance(previous, candidate, unit) + calculate_distance(candidate, destination, unit)
    if direct == 0.0:
        return 1.0 if via == 0.0 else math.inf
    return via / direct


def within_detour(previous, candidate, destination, max_ratio: float, unit: str = "mi") -> bool:
    """
    True when going via `candidate` costs at most `max_ratio` times the
    direct previous→destination leg. Compared multiplicatively so a
    zero-length direct leg only admits a candidate on that same spot.
    """
    direct = calculate_distance(previous, destination, unit)
    via = calculate_distance(previous, candidate, unit) + calculate_distance(candidate, destination, unit)
    return via <= max_ratio * direct
