"""
provider_failure_logger.py
──────────────────────────
Records every provider failure (stage + provider id) for post-hoc
accuracy analysis. Always logs through `logging`; additionally appends
to a CSV ledger when a path is given.

record() never raises: a broken ledger must not break a pipeline run.
"""

import csv
import logging
import os
import uuid
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)

_HEADERS = [
    "failure_id",
    "timestamp",
    "stage",
    "provider_id",
    "document_id",
    "error_type",
    "message",
]


class ProviderFailureLogger:
    def __init__(self, log_path: Optional[str] = None):
        self.log_path = log_path

    def _ensure_headers(self):
        if not os.path.exists(self.log_path):
            with open(self.log_path, "w", newline="", encoding="utf-8") as f:
                csv.writer(f).writerow(_HEADERS)
            logger.info(f"[ProviderFailureLogger] Created log file: {self.log_path}")

    def record(self, stage: str, provider_id: str, error, document_id: str = "") -> Optional[str]:
        """
        Parameters
        ----------
        stage       : "extraction" | "verification" | "geocoding"
        provider_id : model id or geocoding service name
        error       : exception instance or plain message
        document_id : permit identifier, when known

        Returns the failure_id, or None if the ledger could not be written.
        """
        error_type = type(error).__name__ if isinstance(error, BaseException) else "ProviderFailure"
        message = str(error)
        logger.warning(
            f"[ProviderFailure] stage={stage} | provider={provider_id} | "
            f"document={document_id[:12] or '-'} | {error_type}: {message}"
        )

        if not self.log_path:
            return None

        failure_id = str(uuid.uuid4())
        try:
            self._ensure_headers()
            with open(self.log_path, "a", newline="", encoding="utf-8") as f:
                csv.writer(f).writerow([
                    failure_id,
                    datetime.now().isoformat(timespec="seconds"),
                    stage,
                    provider_id,
                    document_id,
                    error_type,
                    message,
                ])
        except Exception as e:
            logger.warning(f"[ProviderFailureLogger] Could not write {self.log_path}: {e}")
            return None
        return failure_id
