"""
waypoint_verifier.py
────────────────────
STEP 2 — double-check extracted waypoints against the original permit.

The verifier sees the permit and the enumerated candidate list, and is
asked for an independent count-and-content check. It may correct
addresses and add rows the extractor missed; it is not allowed to prune.

If the verification call fails or its output is outside the JSON
contract, the run degrades instead of failing: the candidates are taken
as verified with confidence fixed at 0.5.
"""

import logging
from typing import List, Optional

from agents.route_verification.errors import VerificationDegraded
from agents.route_verification.provider_config import ProviderDescriptor
from agents.route_verification.response_schemas import VerificationResponse, parse_structured
from agents.route_verification.route_models import (
    SourceDocument, VerificationResult, VerifiedWaypoint, Waypoint, sort_by_order,
)
from execution.provider_failure_logger import ProviderFailureLogger

logger = logging.getLogger(__name__)

STAGE = "verification"
DEGRADED_CONFIDENCE = 0.5

_VERIFICATION_PROMPT = """
You are auditing a waypoint list extracted from the truck permit attached to this request.

EXTRACTED WAYPOINTS:
{waypoints}

Check the permit's routing section yourself, independently of the list above:
1. COUNT the entries in the routing section. Does the list contain the same number?
2. For each entry, is the address correct? Correct it if not.
3. Is any entry MISSING? Insert it at its position with "verified": true and a note.

STRICT RULES:
- NEVER drop an entry from the list. You may only confirm, correct, or add.
- Keep the original order of the routing section; "order" must follow it.
- "type" is "origin" for the first entry, "destination" for the last, "waypoint" otherwise.
- confidence is your overall confidence between 0 and 1.
- Return ONLY valid JSON. No markdown. No explanations outside the JSON.

Return exactly this structure:
{{
  "verified": true,
  "verifiedWaypoints": [
    {{"order": 1, "type": "origin", "address": "Kansas City, MO", "verified": true, "notes": "Verified - matches permit"}}
  ],
  "issues": ["<description of any discrepancy>"],
  "confidence": 0.95
}}
"""


def format_candidates(candidates: List[Waypoint]) -> str:
    """Enumerated list, one candidate per line: '1. origin: Kansas City, MO'."""
    return "\n".join(
        f"{idx}. {wp.type.value}: {wp.address}" for idx, wp in enumerate(candidates, start=1)
    )


class WaypointVerifier:
    def __init__(self, client, provider: ProviderDescriptor,
                 failure_logger: Optional[ProviderFailureLogger] = None):
        self.client = client
        self.provider = provider
        self.failure_logger = failure_logger or ProviderFailureLogger()

    def _request(self, document: SourceDocument, candidates: List[Waypoint]) -> VerificationResponse:
        prompt = _VERIFICATION_PROMPT.format(waypoints=format_candidates(candidates))
        try:
            raw = self.client.generate(self.provider, prompt, document)
            return parse_structured(raw, VerificationResponse)
        except Exception as e:
            self.failure_logger.record(STAGE, self.provider.id, e, document.document_id)
            raise VerificationDegraded(f"{type(e).__name__}: {e}") from e

    def verify(self, document: SourceDocument, candidates: List[Waypoint]) -> VerificationResult:
        logger.info(f"[WaypointVerifier] ▶ Verifying {len(candidates)} waypoints against original document")

        try:
            response = self._request(document, candidates)
        except VerificationDegraded as e:
            logger.warning(f"[WaypointVerifier] Verification degraded ({e}). Using extracted waypoints as-is.")
            return VerificationResult(
                verified=True,
                waypoints=[VerifiedWaypoint.from_waypoint(wp, verified=True) for wp in candidates],
                issues=[],
                confidence=DEGRADED_CONFIDENCE,
                degraded=True,
            )

        issues = list(response.issues)
        if len(response.verifiedWaypoints) < len(candidates):
            issues.append(
                f"Verifier returned {len(response.verifiedWaypoints)} waypoints for "
                f"{len(candidates)} extracted; extracted list kept unverified"
            )
            logger.warning(f"[WaypointVerifier] {issues[-1]}")
            waypoints = [VerifiedWaypoint.from_waypoint(wp, verified=False) for wp in candidates]
        else:
            waypoints = sort_by_order([
                VerifiedWaypoint(
                    order=wp.order, type=wp.type, address=wp.address,
                    notes=wp.notes, verified=wp.verified,
                )
                for wp in response.verifiedWaypoints
            ])
            added = len(waypoints) - len(candidates)
            if added:
                logger.info(f"[WaypointVerifier] Verifier added {added} waypoint(s) missed by extraction")

        result = VerificationResult(
            verified=response.verified,
            waypoints=waypoints,
            issues=issues,
            confidence=response.confidence,
        )
        logger.info(
            f"[WaypointVerifier] ✅ Verification completed | verified={result.verified} | "
            f"confidence={result.confidence} | issues={len(result.issues)}"
        )
        return result
