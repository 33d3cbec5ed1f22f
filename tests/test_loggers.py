import csv

from execution.provider_failure_logger import ProviderFailureLogger
from execution.route_verification_logger import RouteVerificationLogger


def read_rows(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


def test_failure_logger_appends_rows(tmp_path):
    path = tmp_path / "failures.csv"
    failures = ProviderFailureLogger(str(path))

    first = failures.record("extraction", "model-a", TimeoutError("deadline exceeded"), "doc-1")
    failures.record("geocoding", "google-maps", "ZERO_RESULTS")

    rows = read_rows(path)
    assert rows[0]["failure_id"] == first
    assert (rows[0]["stage"], rows[0]["provider_id"], rows[0]["document_id"]) == ("extraction", "model-a", "doc-1")
    assert rows[0]["error_type"] == "TimeoutError"
    assert rows[0]["message"] == "deadline exceeded"
    assert rows[1]["error_type"] == "ProviderFailure"


def test_failure_logger_without_path_only_logs(caplog):
    failures = ProviderFailureLogger()

    with caplog.at_level("WARNING"):
        assert failures.record("verification", "model-v", ValueError("bad json")) is None

    assert "provider=model-v" in caplog.text


def test_failure_logger_never_raises_on_unwritable_path(tmp_path):
    failures = ProviderFailureLogger(str(tmp_path))

    assert failures.record("extraction", "model-a", RuntimeError("boom")) is None


def test_run_logger_writes_header_once(tmp_path):
    path = tmp_path / "runs.csv"
    RouteVerificationLogger(str(path)).log("doc-1", "SUCCESS", geocoded_count=3, optimized_distance=12.5)
    RouteVerificationLogger(str(path)).log("doc-2", "FAILED", error="InsufficientWaypoints: 1")

    rows = read_rows(path)
    assert [r["document_id"] for r in rows] == ["doc-1", "doc-2"]
    assert rows[0]["optimized_distance"] == "12.5"
    assert rows[0]["verification_confidence"] == ""
    assert rows[1]["error"] == "InsufficientWaypoints: 1"
