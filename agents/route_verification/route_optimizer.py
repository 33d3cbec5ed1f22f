"""
route_optimizer.py
──────────────────
Removes waypoints that create implausible backtracking.

Walks the candidates in source order with a cursor starting at the
origin. A candidate is kept when the detour through it, relative to
going straight from the cursor to the destination, stays within
`max_detour_ratio`; only kept candidates advance the cursor.

Duplicate localities are left alone: a permit can legitimately pass
through the same town twice on different legs.
"""

import logging

from agents.route_verification import distance_engine

logger = logging.getLogger(__name__)

DEFAULT_MAX_DETOUR_RATIO = 3.0


def optimize(origin, waypoints: list, destination,
             max_detour_ratio: float = DEFAULT_MAX_DETOUR_RATIO, unit: str = "mi") -> list:
    """
    Parameters
    ----------
    origin           : geocoded origin (has lat / lng)
    waypoints        : geocoded intermediate waypoints in travel order
    destination      : geocoded destination
    max_detour_ratio : keep threshold, inclusive
    unit             : distance unit for the log summary

    Returns
    -------
    Kept waypoints, relative order preserved.
    """
    if not waypoints:
        return []

    logger.info(f"[RouteOptimizer] Checking geographic order of {len(waypoints)} waypoints...")
    original_distance = distance_engine.calculate_total_distance([origin, *waypoints, destination], unit)

    kept = []
    last_point = origin
    for wp in waypoints:
        if distance_engine.within_detour(last_point, wp, destination, max_detour_ratio, unit):
            kept.append(wp)
            last_point = wp
        else:
            ratio = distance_engine.detour_ratio(last_point, wp, destination, unit)
            extra = (
                distance_engine.calculate_distance(last_point, wp, unit)
                + distance_engine.calculate_distance(wp, destination, unit)
                - distance_engine.calculate_distance(last_point, destination, unit)
            )
            logger.info(
                f"[RouteOptimizer] Removed backtracking waypoint: {wp.address} "
                f"(ratio={ratio:.2f}, adds {extra:.0f} {unit})"
            )

    optimized_distance = distance_engine.calculate_total_distance([origin, *kept, destination], unit)
    logger.info(
        f"[RouteOptimizer] Route optimization: {original_distance:.0f}{unit} → "
        f"{optimized_distance:.0f}{unit} (kept {len(kept)}/{len(waypoints)} waypoints)"
    )
    return kept
