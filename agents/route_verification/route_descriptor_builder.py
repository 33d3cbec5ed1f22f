"""
route_descriptor_builder.py
───────────────────────────
STEP 4 — assemble the final origin / destination / waypoints structure
consumed by the map-rendering side.

Output shape (RouteDescriptor.to_dict()):
{
  "origin":      {"lat", "lng", "address", "formattedAddress"},
  "destination": {...},
  "waypoints":   [{...}, ...],      # travel order, origin → destination
  "travelMode":  "DRIVING",
  "timestamp":   ISO-8601 UTC
}
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List

from agents.route_verification import route_optimizer
from agents.route_verification.errors import InsufficientWaypoints
from agents.route_verification.route_models import (
    GeocodedWaypoint, GeoPoint, RouteDescriptor, WaypointType, sort_by_order,
)

logger = logging.getLogger(__name__)

TRAVEL_MODE = "DRIVING"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def select_endpoints(valid: List[GeocodedWaypoint]) -> tuple:
    """
    Origin: first entry typed origin, else the first by order.
    Destination: first entry typed destination that comes after the
    origin, else the last entry after it.

    When nothing follows the chosen origin the type labels are ignored
    and the first and last entries by order are used.
    """
    origin = next((wp for wp in valid if wp.type == WaypointType.ORIGIN), valid[0])
    position = next(i for i, wp in enumerate(valid) if wp is origin)
    later = valid[position + 1:]
    if not later:
        logger.warning(
            f"[RouteDescriptorBuilder] Origin {origin.address} (order={origin.order}) is the last entry; "
            f"using first and last by order"
        )
        return valid[0], valid[-1]
    destination = next((wp for wp in later if wp.type == WaypointType.DESTINATION), later[-1])
    return origin, destination


def build(
    geocoded: List[GeocodedWaypoint],
    max_detour_ratio: float = route_optimizer.DEFAULT_MAX_DETOUR_RATIO,
    unit: str = "mi",
    clock: Callable[[], datetime] = _utc_now,
) -> RouteDescriptor:
    logger.info("[RouteDescriptorBuilder] ▶ Generating route descriptor")

    valid = sort_by_order([wp for wp in geocoded if wp.geocoded and wp.coordinates is not None])
    if len(valid) < 2:
        raise InsufficientWaypoints(len(valid))

    origin, destination = select_endpoints(valid)
    low, high = origin.order, destination.order

    intermediate = []
    for wp in valid:
        if wp is origin or wp is destination:
            continue
        if not low <= wp.order <= high:
            logger.warning(
                f"[RouteDescriptorBuilder] Dropping {wp.address} (order={wp.order}) "
                f"outside origin/destination range {low}..{high}"
            )
            continue
        intermediate.append(wp)

    kept = route_optimizer.optimize(origin, intermediate, destination, max_detour_ratio, unit)

    descriptor = RouteDescriptor(
        origin=GeoPoint.from_geocoded(origin),
        destination=GeoPoint.from_geocoded(destination),
        waypoints=tuple(GeoPoint.from_geocoded(wp) for wp in kept),
        travel_mode=TRAVEL_MODE,
        timestamp=clock().isoformat(timespec="milliseconds"),
    )

    logger.info(f"[RouteDescriptorBuilder] ✅ Generated route with {len(kept)} waypoints")
    logger.info(f"[RouteDescriptorBuilder]    Origin: {origin.address}")
    logger.info(f"[RouteDescriptorBuilder]    Destination: {destination.address}")
    return descriptor
