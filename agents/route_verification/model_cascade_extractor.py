"""
model_cascade_extractor.py
──────────────────────────
STEP 1 — read the permit's routing table into ordered waypoints.

Providers are tried in their configured order. The first one that
returns at least one waypoint wins; the rest are not consulted and
results are never merged. A provider that errors, times out, returns
output outside the JSON contract, or returns no waypoints is logged
and skipped. It is not asked again.
"""

import logging
from typing import List, NamedTuple, Optional, Sequence

from agents.route_verification.errors import ExtractionExhausted
from agents.route_verification.provider_config import ProviderDescriptor
from agents.route_verification.response_schemas import ExtractionResponse, parse_structured
from agents.route_verification.route_models import SourceDocument, Waypoint, sort_by_order
from execution.provider_failure_logger import ProviderFailureLogger

logger = logging.getLogger(__name__)

STAGE = "extraction"


class ExtractionResult(NamedTuple):
    waypoints: List[Waypoint]
    provider_id: str


_EXTRACTION_PROMPT = """
You are reading an oversize/overweight truck permit.

Your ONLY job is to transcribe the permit's routing section into an ordered list of waypoints.

STRICT RULES:
- Find the "Routing" / "Route" / "Authorized Route" section (usually a table).
- Transcribe it LINE FOR LINE: one waypoint per row or per location, no skipping, no merging.
- Preserve the ORIGINAL ORDER exactly as printed. Never reorder to "fix" the route.
- Classify each entry: the first location is "origin", the last is "destination",
  everything in between is "waypoint".
- Give every address as something a geocoder can find: "City, ST" where possible.
  For highway-only rows ("I-70 E", "Exit 25", "US-50 @ SR-177") use the nearest city
  on that highway as "City, ST" and put the original text in "notes".
- NEVER use vague locations such as "United States".
- Return ONLY valid JSON. No markdown. No explanations outside the JSON.

Return exactly this structure:
{
  "waypoints": [
    {"order": 1, "type": "origin",      "address": "Kansas City, MO"},
    {"order": 2, "type": "waypoint",    "address": "Columbia, MO", "notes": "I-70 E"},
    {"order": 3, "type": "destination", "address": "Collinsville, IL"}
  ]
}
"""


class ModelCascadeExtractor:
    """
    Parameters
    ----------
    client         : object with generate(provider, instruction, document=None) -> str
    providers      : ordered ProviderDescriptor list, highest priority first
    failure_logger : ProviderFailureLogger for per-provider failures
    """

    def __init__(self, client, providers: Sequence[ProviderDescriptor],
                 failure_logger: Optional[ProviderFailureLogger] = None):
        self.client = client
        self.providers = tuple(providers)
        self.failure_logger = failure_logger or ProviderFailureLogger()

    def extract(self, document: SourceDocument) -> ExtractionResult:
        logger.info(
            f"[CascadeExtractor] ▶ Extracting waypoints from document={document.document_id[:12]} "
            f"({document.media_type}) with {len(self.providers)} provider(s)"
        )
        attempts = []

        for provider in self.providers:
            try:
                raw = self.client.generate(provider, _EXTRACTION_PROMPT, document)
                parsed = parse_structured(raw, ExtractionResponse)
            except Exception as e:
                self.failure_logger.record(STAGE, provider.id, e, document.document_id)
                attempts.append((provider.id, f"{type(e).__name__}: {e}"))
                continue

            if not parsed.waypoints:
                self.failure_logger.record(STAGE, provider.id, "returned zero waypoints", document.document_id)
                attempts.append((provider.id, "returned zero waypoints"))
                continue

            waypoints = sort_by_order([
                Waypoint(order=wp.order, type=wp.type, address=wp.address, notes=wp.notes)
                for wp in parsed.waypoints
            ])
            logger.info(
                f"[CascadeExtractor] ✅ {provider.id} extracted {len(waypoints)} waypoints: "
                + " → ".join(wp.address for wp in waypoints)
            )
            return ExtractionResult(waypoints, provider.id)

        logger.error(f"[CascadeExtractor] All {len(self.providers)} provider(s) exhausted")
        raise ExtractionExhausted(attempts)
