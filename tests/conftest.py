import json

import pytest

from agents.route_verification.errors import GeocodeFailure
from agents.route_verification.geocoder import GeocodeMatch
from agents.route_verification.provider_config import PipelineConfig, ProviderDescriptor
from agents.route_verification.route_models import (
    GeocodedWaypoint, SourceDocument, VerifiedWaypoint, Waypoint, WaypointType,
)


class FakeModelClient:
    """
    Scripted stand-in for GeminiModelClient.

    `responses` maps provider id -> list of items; each call pops the next
    item. Strings are returned as-is, exceptions are raised.
    """

    def __init__(self, responses=None):
        self.responses = {pid: list(items) for pid, items in (responses or {}).items()}
        self.calls = []

    def generate(self, provider, instruction, document=None, max_output_tokens=None):
        self.calls.append((provider.id, instruction, document))
        queue = self.responses.get(provider.id)
        if not queue:
            raise RuntimeError(f"no scripted response for {provider.id}")
        item = queue.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class FakeProvider:
    """Resolves addresses from a table; anything else fails."""

    def __init__(self, name, table):
        self.name = name
        self.table = table
        self.calls = []

    def lookup(self, address):
        self.calls.append(address)
        if address not in self.table:
            raise GeocodeFailure(address, f"{self.name}: ZERO_RESULTS", self.name)
        lat, lng = self.table[address]
        return GeocodeMatch(lat, lng, f"{address}, USA", self.name)


class RecordingFailureLogger:
    def __init__(self):
        self.records = []

    def record(self, stage, provider_id, error, document_id=""):
        self.records.append((stage, provider_id, str(error)))
        return None


def waypoints_json(*rows):
    return json.dumps({
        "waypoints": [
            {"order": order, "type": wp_type, "address": address}
            for order, wp_type, address in rows
        ]
    })


def make_geocoded(order, lat, lng, wp_type=WaypointType.WAYPOINT, address=None, geocoded=True):
    base = VerifiedWaypoint(order=order, type=wp_type, address=address or f"Stop {order}", verified=True)
    if not geocoded:
        return GeocodedWaypoint.unresolved(base, "not found")
    return GeocodedWaypoint.resolved(base, lat, lng, f"{base.address}, XX, USA", "test")


@pytest.fixture
def document():
    return SourceDocument(content=b"%PDF-1.4 permit bytes", media_type="application/pdf")


@pytest.fixture
def candidates():
    return [
        Waypoint(order=1, type=WaypointType.ORIGIN, address="Kansas City, MO"),
        Waypoint(order=2, type=WaypointType.WAYPOINT, address="Columbia, MO"),
        Waypoint(order=3, type=WaypointType.DESTINATION, address="Collinsville, IL"),
    ]


@pytest.fixture
def config():
    return PipelineConfig(
        gemini_api_key="test-key",
        extraction_providers=(
            ProviderDescriptor("model-a", timeout=45),
            ProviderDescriptor("model-b", timeout=45),
        ),
        verification_provider=ProviderDescriptor("model-v", timeout=45),
        geocode_estimation_provider=ProviderDescriptor("model-g", capability_tags=("json",), timeout=30),
        geocode_delay_s=0.0,
    )


@pytest.fixture
def failure_logger():
    return RecordingFailureLogger()
