"""
route_models.py
───────────────
Dataclasses flowing between the pipeline stages.

  SourceDocument → Waypoint → VerifiedWaypoint → GeocodedWaypoint
                                                   → RouteDescriptor
"""

import hashlib
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class WaypointType(str, Enum):
    ORIGIN = "origin"
    WAYPOINT = "waypoint"
    DESTINATION = "destination"


_MEDIA_TYPES = {
    ".pdf":  "application/pdf",
    ".png":  "image/png",
    ".jpg":  "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif":  "image/gif",
    ".webp": "image/webp",
}


@dataclass(frozen=True)
class SourceDocument:
    """Raw permit bytes plus media type. Conversion happens upstream."""
    content: bytes
    media_type: str
    document_id: str = ""

    def __post_init__(self):
        if not self.content:
            raise ValueError("SourceDocument content is empty")
        if not (self.media_type.startswith("image/") or self.media_type == "application/pdf"):
            raise ValueError(f"Unsupported media type: {self.media_type}")
        if not self.document_id:
            object.__setattr__(self, "document_id", hashlib.sha256(self.content).hexdigest())

    @classmethod
    def from_path(cls, path: str) -> "SourceDocument":
        ext = os.path.splitext(path)[1].lower()
        with open(path, "rb") as f:
            content = f.read()
        return cls(content=content, media_type=_MEDIA_TYPES.get(ext, "image/png"))


@dataclass
class Waypoint:
    order: int
    type: WaypointType
    address: str
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"order": self.order, "type": self.type.value, "address": self.address}
        if self.notes is not None:
            data["notes"] = self.notes
        return data


@dataclass
class VerifiedWaypoint(Waypoint):
    verified: bool = False

    @classmethod
    def from_waypoint(cls, wp: Waypoint, verified: bool) -> "VerifiedWaypoint":
        return cls(order=wp.order, type=wp.type, address=wp.address, notes=wp.notes, verified=verified)

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "verified": self.verified}


@dataclass
class GeocodedWaypoint(VerifiedWaypoint):
    coordinates: Optional[Tuple[float, float]] = None
    formatted_address: Optional[str] = None
    geocoded: bool = False
    error: Optional[str] = None
    geocode_source: Optional[str] = None

    @property
    def lat(self) -> float:
        return self.coordinates[0]

    @property
    def lng(self) -> float:
        return self.coordinates[1]

    @classmethod
    def resolved(cls, wp: VerifiedWaypoint, lat: float, lng: float,
                 formatted_address: str, source: str) -> "GeocodedWaypoint":
        return cls(
            order=wp.order, type=wp.type, address=wp.address, notes=wp.notes,
            verified=wp.verified, coordinates=(lat, lng),
            formatted_address=formatted_address, geocoded=True, geocode_source=source,
        )

    @classmethod
    def unresolved(cls, wp: VerifiedWaypoint, error: str) -> "GeocodedWaypoint":
        return cls(
            order=wp.order, type=wp.type, address=wp.address, notes=wp.notes,
            verified=wp.verified, coordinates=None, geocoded=False, error=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["coordinates"] = (
            {"lat": self.coordinates[0], "lng": self.coordinates[1]} if self.coordinates else None
        )
        data["formattedAddress"] = self.formatted_address
        data["geocoded"] = self.geocoded
        if self.error is not None:
            data["error"] = self.error
        if self.geocode_source is not None:
            data["geocodeSource"] = self.geocode_source
        return data


@dataclass
class VerificationResult:
    verified: bool
    waypoints: List[VerifiedWaypoint]
    issues: List[str] = field(default_factory=list)
    confidence: float = 0.0
    degraded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verified":          self.verified,
            "verifiedWaypoints": [wp.to_dict() for wp in self.waypoints],
            "issues":            list(self.issues),
            "confidence":        self.confidence,
            "degraded":          self.degraded,
        }


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float
    address: str
    formatted_address: str
    # kept for ordering checks; not part of the serialized shape
    order: int = 0

    @classmethod
    def from_geocoded(cls, wp: GeocodedWaypoint) -> "GeoPoint":
        return cls(
            lat=wp.lat,
            lng=wp.lng,
            address=wp.address,
            formatted_address=wp.formatted_address or wp.address,
            order=wp.order,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "address": self.address,
            "formattedAddress": self.formatted_address,
        }


@dataclass(frozen=True)
class RouteDescriptor:
    origin: GeoPoint
    destination: GeoPoint
    waypoints: Tuple[GeoPoint, ...]
    travel_mode: str
    timestamp: str

    def points(self) -> List[GeoPoint]:
        """Origin, intermediate waypoints and destination in travel order."""
        return [self.origin, *self.waypoints, self.destination]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin":      self.origin.to_dict(),
            "destination": self.destination.to_dict(),
            "waypoints":   [p.to_dict() for p in self.waypoints],
            "travelMode":  self.travel_mode,
            "timestamp":   self.timestamp,
        }


@dataclass
class RouteVerificationReport:
    document_id: str
    extracted_waypoints: List[Waypoint]
    verification: VerificationResult
    geocoded_waypoints: List[GeocodedWaypoint]
    route: RouteDescriptor
    metadata: Dict[str, Any]
    success: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success":            self.success,
            "documentId":         self.document_id,
            "extractedWaypoints": [wp.to_dict() for wp in self.extracted_waypoints],
            "verificationResult": self.verification.to_dict(),
            "geocodedWaypoints":  [wp.to_dict() for wp in self.geocoded_waypoints],
            "mapsJson":           self.route.to_dict(),
            "metadata":           dict(self.metadata),
        }


def sort_by_order(waypoints: list) -> list:
    """Stable sort on the source-document order."""
    return sorted(waypoints, key=lambda wp: wp.order)

