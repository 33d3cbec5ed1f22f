"""
route_verification_agent.py
───────────────────────────
Runs the full permit route pipeline for one document and returns a
RouteVerificationReport:

{
  "success":            true,
  "documentId":         str,
  "extractedWaypoints": [...],
  "verificationResult": {...},
  "geocodedWaypoints":  [...],
  "mapsJson":           RouteDescriptor,
  "metadata": {
      "totalWaypoints", "geocodedSuccessfully", "verificationConfidence",
      "verificationDegraded", "droppedWaypoints", "originalDistance",
      "optimizedDistance", "distanceUnit", "extractionProvider", "timestamp"
  }
}

Stages run strictly in sequence. Only ExtractionExhausted and
InsufficientWaypoints reach the caller.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from agents.route_verification import distance_engine
from agents.route_verification import route_descriptor_builder
from agents.route_verification.errors import RouteVerificationError
from agents.route_verification.geocoder import Geocoder
from agents.route_verification.model_cascade_extractor import ModelCascadeExtractor
from agents.route_verification.provider_config import PipelineConfig
from agents.route_verification.route_models import RouteVerificationReport, SourceDocument, sort_by_order
from agents.route_verification.waypoint_verifier import WaypointVerifier
from execution.route_verification_logger import RouteVerificationLogger

logger = logging.getLogger(__name__)


class RouteVerificationAgent:
    """
    Coordinates extraction → verification → geocoding → optimization → build.
    """

    def __init__(
        self,
        extractor: ModelCascadeExtractor,
        verifier: WaypointVerifier,
        geocoder: Geocoder,
        config: PipelineConfig,
        run_logger: Optional[RouteVerificationLogger] = None,
    ):
        self.extractor = extractor
        self.verifier = verifier
        self.geocoder = geocoder
        self.config = config
        self.run_logger = run_logger
        logger.info(
            f"[RouteVerificationAgent] Initialized with "
            f"{len(config.extraction_providers)} extraction provider(s)"
        )

    def _log_run(self, **fields):
        if self.run_logger is None:
            return None
        try:
            return self.run_logger.log(distance_unit=self.config.distance_unit, **fields)
        except OSError as e:
            logger.warning(f"[RouteVerificationAgent] Run log not written: {e}")
            return None

    def process_document(self, document: SourceDocument, cache=None) -> RouteVerificationReport:
        """
        Full pipeline for one permit.

        Parameters
        ----------
        document : SourceDocument (image or single-page PDF)
        cache    : optional caller-owned cache keyed by document_id

        Returns
        -------
        RouteVerificationReport
        """
        doc_id = document.document_id
        if cache is not None:
            cached = cache.get(doc_id)
            if cached is not None:
                logger.info(f"[RouteVerificationAgent] Using cached report for document={doc_id[:12]}")
                return cached

        logger.info("=" * 60)
        logger.info(f"[RouteVerificationAgent] ▶ ROUTE VERIFICATION STARTED | document={doc_id[:12]}")
        logger.info("=" * 60)

        extracted = []
        provider_id = ""
        verification = None
        geocoded = []
        try:
            # ── Step 1: Extract waypoints ────────────────────────────────────────
            extracted, provider_id = self.extractor.extract(document)
            logger.info(
                f"[RouteVerificationAgent] ✔ Step 1 — Extracted {len(extracted)} waypoints "
                f"via {provider_id}"
            )

            # ── Step 2: Verify against the permit ────────────────────────────────
            verification = self.verifier.verify(document, extracted)
            if not verification.verified and verification.confidence < self.config.low_confidence_threshold:
                logger.warning(
                    f"[RouteVerificationAgent] ⚠️  Low verification confidence: {verification.confidence}"
                )
            logger.info(
                f"[RouteVerificationAgent] ✔ Step 2 — Verified {len(verification.waypoints)} waypoints "
                f"| confidence={verification.confidence} | degraded={verification.degraded}"
            )

            # ── Step 3: Geocode ──────────────────────────────────────────────────
            geocoded = self.geocoder.geocode(verification.waypoints, doc_id)
            geocoded_count = sum(1 for wp in geocoded if wp.geocoded)
            logger.info(f"[RouteVerificationAgent] ✔ Step 3 — Geocoded {geocoded_count}/{len(geocoded)}")

            # ── Step 4: Optimize order + build descriptor ────────────────────────
            route = route_descriptor_builder.build(
                geocoded,
                max_detour_ratio=self.config.max_detour_ratio,
                unit=self.config.distance_unit,
            )
            logger.info(f"[RouteVerificationAgent] ✔ Step 4 — Route built with {len(route.waypoints)} waypoints")

        except RouteVerificationError as e:
            self._log_run(
                document_id=doc_id,
                status="FAILED",
                extraction_provider=provider_id,
                extracted_count=len(extracted),
                verified_count=len(verification.waypoints) if verification else 0,
                geocoded_count=sum(1 for wp in geocoded if wp.geocoded),
                verification_confidence=verification.confidence if verification else None,
                verification_degraded=verification.degraded if verification else False,
                error=f"{type(e).__name__}: {e}",
            )
            logger.error("=" * 60)
            logger.error(f"[RouteVerificationAgent] ❌ ROUTE VERIFICATION FAILED: {e}")
            logger.error("=" * 60)
            raise

        # ── Step 5: Summary ──────────────────────────────────────────────────────
        unit = self.config.distance_unit
        resolved = [wp for wp in geocoded if wp.geocoded]
        route_points = route.points()
        original_distance = distance_engine.calculate_total_distance(
            sort_by_order(resolved), unit,
        )
        optimized_distance = distance_engine.calculate_total_distance(route_points, unit)

        metadata = {
            "totalWaypoints":         len(geocoded),
            "geocodedSuccessfully":   len(resolved),
            "verificationConfidence": verification.confidence,
            "verificationDegraded":   verification.degraded,
            "droppedWaypoints":       len(resolved) - len(route_points),
            "originalDistance":       original_distance,
            "optimizedDistance":      optimized_distance,
            "distanceUnit":           unit,
            "extractionProvider":     provider_id,
            "timestamp":              datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
        }

        report = RouteVerificationReport(
            document_id=doc_id,
            extracted_waypoints=extracted,
            verification=verification,
            geocoded_waypoints=geocoded,
            route=route,
            metadata=metadata,
        )

        log_id = self._log_run(
            document_id=doc_id,
            status="SUCCESS",
            extraction_provider=provider_id,
            extracted_count=len(extracted),
            verified_count=len(verification.waypoints),
            geocoded_count=len(resolved),
            route_waypoint_count=len(route.waypoints),
            verification_confidence=verification.confidence,
            verification_degraded=verification.degraded,
            optimized_distance=optimized_distance,
        )
        if log_id:
            report.metadata["runLogId"] = log_id

        if cache is not None:
            cache.put(doc_id, report)

        logger.info("=" * 60)
        logger.info(
            f"[RouteVerificationAgent] ✅ ROUTE VERIFICATION COMPLETED → "
            f"{route.origin.address} → {route.destination.address} | "
            f"waypoints={len(route.waypoints)} | dist={optimized_distance} {unit}"
        )
        logger.info("=" * 60)
        return report
