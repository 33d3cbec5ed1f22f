"""
geocoder.py
───────────
STEP 3 — resolve verified waypoint addresses to coordinates.

Primary   : Google Maps Geocoding API (exact lookup), when a key is set.
Fallback  : LLM estimate, used when the primary is not configured or
            fails for a waypoint. Country-level answers ("United States")
            are rejected as too vague.

A waypoint nobody can resolve stays in the output with geocoded=False
and an error message; the batch always completes.

API Base : https://maps.googleapis.com/maps/api/geocode/json
Endpoint : ?address=<address>&key=<KEY>
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import requests

from agents.route_verification.errors import GeocodeFailure
from agents.route_verification.provider_config import ProviderDescriptor
from agents.route_verification.response_schemas import GeocodeEstimateResponse, parse_structured
from agents.route_verification.route_models import GeocodedWaypoint, VerifiedWaypoint
from execution.provider_failure_logger import ProviderFailureLogger

logger = logging.getLogger(__name__)

STAGE = "geocoding"

_GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
_VAGUE_ADDRESSES = {"united states", "usa", "us", "united states of america"}

_ESTIMATE_PROMPT = """
Convert this address to geographic coordinates (latitude and longitude):

Address: {address}

STRICT RULES:
- Provide the most accurate coordinates you can.
- For highway references or exits ("I-70 E", "Exit 25"), use the nearest city on that highway.
- NEVER answer with just "United States" or "USA". Always name a specific city and state.
- If the exact location is unknown, use the nearest city along the route.
- Return ONLY valid JSON. No markdown. No explanations outside the JSON.

Return exactly this structure:
{{"lat": 41.8781, "lng": -87.6298, "formattedAddress": "Chicago, IL, USA"}}
"""


@dataclass(frozen=True)
class GeocodeMatch:
    lat: float
    lng: float
    formatted_address: str
    source: str


def is_locality_specific(formatted_address: str) -> bool:
    """False for country-only strings or anything without a comma qualifier."""
    text = (formatted_address or "").strip()
    if text.lower() in _VAGUE_ADDRESSES:
        return False
    return "," in text


class GoogleMapsGeocoder:
    name = "google-maps"

    def __init__(self, api_key: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def lookup(self, address: str) -> GeocodeMatch:
        try:
            resp = self.session.get(
                _GOOGLE_GEOCODE_URL,
                params={"address": address, "key": self.api_key},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise GeocodeFailure(address, f"Google Maps request failed: {e}", self.name) from e

        status = data.get("status")
        results = data.get("results") or []
        if status != "OK" or not results:
            raise GeocodeFailure(address, f"Google Maps API error: {status}", self.name)

        result = results[0]
        try:
            location = result["geometry"]["location"]
            lat, lng = float(location["lat"]), float(location["lng"])
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodeFailure(address, f"Google Maps returned malformed result: {e}", self.name) from e
        return GeocodeMatch(
            lat=lat,
            lng=lng,
            formatted_address=result.get("formatted_address", address),
            source=self.name,
        )


class LLMGeocodeEstimator:
    """Less accurate than an exact lookup; only ever a fallback."""

    def __init__(self, client, provider: ProviderDescriptor):
        self.client = client
        self.provider = provider
        self.name = f"llm:{provider.id}"

    def lookup(self, address: str) -> GeocodeMatch:
        try:
            raw = self.client.generate(
                self.provider, _ESTIMATE_PROMPT.format(address=address), None, max_output_tokens=300,
            )
            estimate = parse_structured(raw, GeocodeEstimateResponse)
        except Exception as e:
            raise GeocodeFailure(address, f"LLM geocoding failed: {e}", self.name) from e

        if not is_locality_specific(estimate.formatted_address):
            raise GeocodeFailure(
                address, f"Geocoding returned vague location: {estimate.formatted_address}", self.name,
            )
        return GeocodeMatch(
            lat=estimate.lat,
            lng=estimate.lng,
            formatted_address=estimate.formatted_address,
            source=self.name,
        )


class Geocoder:
    """
    Parameters
    ----------
    primary        : exact-lookup provider (e.g. GoogleMapsGeocoder) or None
    fallback       : estimation provider (e.g. LLMGeocodeEstimator) or None
    delay_s        : pause between successive primary calls (rate limit)
    cache          : optional get/put cache keyed by normalized address
    failure_logger : ProviderFailureLogger
    sleep          : injectable for tests
    """

    def __init__(self, primary=None, fallback=None, delay_s: float = 0.2, cache=None,
                 failure_logger: Optional[ProviderFailureLogger] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.primary = primary
        self.fallback = fallback
        self.delay_s = delay_s
        self.cache = cache
        self.failure_logger = failure_logger or ProviderFailureLogger()
        self._sleep = sleep
        self._primary_called = False

    def _call_primary(self, address: str) -> GeocodeMatch:
        if self._primary_called and self.delay_s > 0:
            self._sleep(self.delay_s)
        self._primary_called = True
        return self.primary.lookup(address)

    def geocode_address(self, address: str, document_id: str = "") -> GeocodeMatch:
        """Resolve one address; raises GeocodeFailure when every method fails."""
        key = " ".join(address.lower().split())
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        errors = []
        for provider, is_primary in ((self.primary, True), (self.fallback, False)):
            if provider is None:
                continue
            try:
                match = self._call_primary(address) if is_primary else provider.lookup(address)
            except GeocodeFailure as e:
                self.failure_logger.record(STAGE, e.provider or provider.name, e, document_id)
                errors.append(e.reason)
                continue
            if self.cache is not None:
                self.cache.put(key, match)
            return match

        if not errors:
            raise GeocodeFailure(address, "No geocoding provider configured")
        raise GeocodeFailure(address, errors[-1])

    def geocode(self, waypoints: List[VerifiedWaypoint], document_id: str = "") -> List[GeocodedWaypoint]:
        logger.info(f"[Geocoder] ▶ Geocoding {len(waypoints)} verified waypoints to coordinates")
        self._primary_called = False
        results = []

        for wp in waypoints:
            try:
                match = self.geocode_address(wp.address, document_id)
            except GeocodeFailure as e:
                logger.error(f"[Geocoder]   ✗ Failed to geocode: {wp.address} - {e.reason}")
                results.append(GeocodedWaypoint.unresolved(wp, e.reason))
                continue

            results.append(GeocodedWaypoint.resolved(wp, match.lat, match.lng, match.formatted_address, match.source))
            logger.info(f"[Geocoder]   ✓ Geocoded: {wp.address} → {match.lat}, {match.lng} ({match.source})")

        success = sum(1 for wp in results if wp.geocoded)
        logger.info(f"[Geocoder] ✅ Geocoded {success}/{len(waypoints)} waypoints successfully")
        return results
