"""
errors.py
─────────
Exception taxonomy for the route verification pipeline.

Fatal (surfaced to the caller):
  - ExtractionExhausted    : no extraction provider produced a waypoint
  - InsufficientWaypoints  : fewer than 2 geocoded waypoints remain

Recovered (absorbed inside a stage):
  - VerificationDegraded   : verifier output unusable → extractor list kept
  - GeocodeFailure         : one address could not be resolved
  - ProviderResponseError  : model output is not the expected JSON contract
"""


class RouteVerificationError(Exception):
    """Base exception for route verification errors."""
    pass


class ConfigurationError(RouteVerificationError, ValueError):
    """Raised when pipeline configuration is invalid."""
    pass


class ProviderResponseError(RouteVerificationError):
    """Raised when a provider response does not match the expected schema."""
    pass


class ExtractionExhausted(RouteVerificationError):
    """Raised when every extraction provider failed or returned nothing."""

    def __init__(self, attempts: list):
        self.attempts = list(attempts)
        summary = "; ".join(f"{pid}: {reason}" for pid, reason in self.attempts) or "no providers configured"
        super().__init__(f"No waypoints could be extracted from the permit document ({summary})")


class VerificationDegraded(RouteVerificationError):
    """Raised when the verification response cannot be used."""
    pass


class GeocodeFailure(RouteVerificationError):
    """Raised when a single address cannot be resolved by a provider."""

    def __init__(self, address: str, reason: str, provider: str = ""):
        self.address = address
        self.reason = reason
        self.provider = provider
        super().__init__(reason)


class InsufficientWaypoints(RouteVerificationError):
    """Raised when fewer than 2 waypoints carry coordinates."""

    def __init__(self, found: int, required: int = 2):
        self.found = found
        self.required = required
        super().__init__(f"Insufficient valid waypoints: {found} (need at least {required})")
