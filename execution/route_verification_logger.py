"""
route_verification_logger.py
────────────────────────────
Appends one row per pipeline run to route_verification_log.csv.
"""

import csv
import os
import uuid
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

_HEADERS = [
    "log_id",
    "timestamp",
    "document_id",
    "status",
    "extraction_provider",
    "extracted_count",
    "verified_count",
    "geocoded_count",
    "route_waypoint_count",
    "verification_confidence",
    "verification_degraded",
    "optimized_distance",
    "distance_unit",
    "error",
]


class RouteVerificationLogger:
    def __init__(self, log_path: str):
        self.log_path = log_path
        if not os.path.exists(log_path):
            with open(log_path, "w", newline="", encoding="utf-8") as f:
                csv.writer(f).writerow(_HEADERS)
            logger.info(f"[RouteVerificationLogger] Created log file: {log_path}")

    def log(
        self,
        document_id: str,
        status: str,
        extraction_provider: str = "",
        extracted_count: int = 0,
        verified_count: int = 0,
        geocoded_count: int = 0,
        route_waypoint_count: int = 0,
        verification_confidence: float = None,
        verification_degraded: bool = False,
        optimized_distance: float = None,
        distance_unit: str = "",
        error: str = "",
    ) -> str:
        log_id = str(uuid.uuid4())
        row = [
            log_id,
            datetime.now().isoformat(timespec="seconds"),
            document_id,
            status,
            extraction_provider,
            extracted_count,
            verified_count,
            geocoded_count,
            route_waypoint_count,
            "" if verification_confidence is None else verification_confidence,
            verification_degraded,
            "" if optimized_distance is None else optimized_distance,
            distance_unit,
            error,
        ]
        with open(self.log_path, "a", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(row)

        logger.info(f"[RouteVerificationLogger] Written log_id={log_id} | status={status}")
        return log_id
