"""
provider_config.py
──────────────────
Typed pipeline configuration, built once at process start and passed
into the pipeline. Nothing downstream reads the environment.

Environment variables (all optional except GEMINI_API_KEY):

  GEMINI_API_KEY                 Gemini API key
  ROUTE_EXTRACTION_MODELS        comma-separated model ids, priority order
  ROUTE_VERIFICATION_MODEL       defaults to the first extraction model
  ROUTE_GEOCODE_MODEL            defaults to the first extraction model,
                                 empty string disables the LLM fallback
  ROUTE_MODEL_TIMEOUT_S          per-call timeout for extraction/verification
  ROUTE_GEOCODE_MODEL_TIMEOUT_S  per-call timeout for the LLM geocode estimate
  GOOGLE_MAPS_API_KEY            enables the primary geocoder
  GOOGLE_MAPS_TIMEOUT_S
  ROUTE_GEOCODE_DELAY_S          pause between primary geocoder calls
  ROUTE_MAX_DETOUR_RATIO
  ROUTE_DISTANCE_UNIT            "mi" or "km"
  ROUTE_MAX_OUTPUT_TOKENS
  ROUTE_TEMPERATURE
  ROUTE_RUN_LOG_PATH             CSV ledger of pipeline runs
  ROUTE_FAILURE_LOG_PATH         CSV ledger of provider failures
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from agents.route_verification.distance_engine import EARTH_RADIUS
from agents.route_verification.errors import ConfigurationError
from agents.route_verification.route_optimizer import DEFAULT_MAX_DETOUR_RATIO

logger = logging.getLogger(__name__)

DEFAULT_EXTRACTION_MODELS = "gemini-2.5-flash,gemini-2.0-flash,gemini-2.0-flash-lite"

VISION = "vision"
JSON_OUTPUT = "json"


@dataclass(frozen=True)
class ProviderDescriptor:
    id: str
    capability_tags: Tuple[str, ...] = (VISION, JSON_OUTPUT)
    timeout: float = 45.0

    def __post_init__(self):
        if not self.id or not self.id.strip():
            raise ConfigurationError("Provider id must be a non-empty string")
        if self.timeout <= 0:
            raise ConfigurationError(f"Provider '{self.id}' timeout must be positive, got {self.timeout}")
        object.__setattr__(self, "id", self.id.strip())
        object.__setattr__(self, "capability_tags", tuple(self.capability_tags))

    def supports(self, tag: str) -> bool:
        return tag in self.capability_tags


@dataclass(frozen=True)
class PipelineConfig:
    gemini_api_key: str
    extraction_providers: Tuple[ProviderDescriptor, ...]
    verification_provider: ProviderDescriptor
    geocode_estimation_provider: Optional[ProviderDescriptor] = None
    google_maps_api_key: Optional[str] = None
    google_maps_timeout: float = 10.0
    geocode_delay_s: float = 0.2
    max_detour_ratio: float = DEFAULT_MAX_DETOUR_RATIO
    distance_unit: str = "mi"
    max_output_tokens: int = 2000
    temperature: float = 0.1
    low_confidence_threshold: float = 0.5
    run_log_path: Optional[str] = None
    failure_log_path: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "extraction_providers", tuple(self.extraction_providers))
        if not self.extraction_providers:
            raise ConfigurationError("At least one extraction provider is required")
        for provider in (*self.extraction_providers, self.verification_provider):
            if not provider.supports(VISION):
                raise ConfigurationError(f"Provider '{provider.id}' must support '{VISION}' to read permits")
        if self.max_detour_ratio < 1.0:
            raise ConfigurationError(f"max_detour_ratio must be >= 1.0, got {self.max_detour_ratio}")
        if self.geocode_delay_s < 0:
            raise ConfigurationError(f"geocode_delay_s must be >= 0, got {self.geocode_delay_s}")
        if self.google_maps_timeout <= 0:
            raise ConfigurationError(f"google_maps_timeout must be positive, got {self.google_maps_timeout}")
        if self.distance_unit not in EARTH_RADIUS:
            raise ConfigurationError(f"distance_unit must be one of {sorted(EARTH_RADIUS)}, got {self.distance_unit!r}")
        if self.max_output_tokens <= 0:
            raise ConfigurationError("max_output_tokens must be positive")
        if not 0.0 <= self.temperature <= 2.0:
            raise ConfigurationError(f"temperature must be within [0, 2], got {self.temperature}")

    @property
    def primary_geocoder_enabled(self) -> bool:
        return bool(self.google_maps_api_key)


def _float(env: Dict[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _int(env: Dict[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def parse_model_list(raw: str, timeout: float) -> Tuple[ProviderDescriptor, ...]:
    ids = [part.strip() for part in raw.split(",")]
    return tuple(ProviderDescriptor(id=pid, timeout=timeout) for pid in ids if pid)


def load_config(environ: Optional[Dict[str, str]] = None) -> PipelineConfig:
    """Build and validate the pipeline configuration from the environment."""
    env = dict(os.environ if environ is None else environ)

    api_key = env.get("GEMINI_API_KEY", "").strip()
    if not api_key:
        raise ConfigurationError("GEMINI_API_KEY is required")

    model_timeout = _float(env, "ROUTE_MODEL_TIMEOUT_S", 45.0)
    extraction = parse_model_list(env.get("ROUTE_EXTRACTION_MODELS", "") or DEFAULT_EXTRACTION_MODELS, model_timeout)
    if not extraction:
        raise ConfigurationError("ROUTE_EXTRACTION_MODELS does not name any model")

    verification_id = env.get("ROUTE_VERIFICATION_MODEL", "").strip() or extraction[0].id
    verification = ProviderDescriptor(id=verification_id, timeout=model_timeout)

    geocode_model = env.get("ROUTE_GEOCODE_MODEL")
    if geocode_model is None:
        geocode_model = extraction[0].id
    geocode_provider = None
    if geocode_model.strip():
        geocode_provider = ProviderDescriptor(
            id=geocode_model,
            capability_tags=(JSON_OUTPUT,),
            timeout=_float(env, "ROUTE_GEOCODE_MODEL_TIMEOUT_S", 30.0),
        )

    config = PipelineConfig(
        gemini_api_key=api_key,
        extraction_providers=extraction,
        verification_provider=verification,
        geocode_estimation_provider=geocode_provider,
        google_maps_api_key=env.get("GOOGLE_MAPS_API_KEY", "").strip() or None,
        google_maps_timeout=_float(env, "GOOGLE_MAPS_TIMEOUT_S", 10.0),
        geocode_delay_s=_float(env, "ROUTE_GEOCODE_DELAY_S", 0.2),
        max_detour_ratio=_float(env, "ROUTE_MAX_DETOUR_RATIO", DEFAULT_MAX_DETOUR_RATIO),
        distance_unit=env.get("ROUTE_DISTANCE_UNIT", "").strip() or "mi",
        max_output_tokens=_int(env, "ROUTE_MAX_OUTPUT_TOKENS", 2000),
        temperature=_float(env, "ROUTE_TEMPERATURE", 0.1),
        run_log_path=env.get("ROUTE_RUN_LOG_PATH", "").strip() or None,
        failure_log_path=env.get("ROUTE_FAILURE_LOG_PATH", "").strip() or None,
    )

    logger.info(
        f"[ProviderConfig] extraction={[p.id for p in config.extraction_providers]} | "
        f"verification={config.verification_provider.id} | "
        f"geocode_primary={'google-maps' if config.primary_geocoder_enabled else 'disabled'} | "
        f"geocode_fallback={geocode_provider.id if geocode_provider else 'disabled'} | "
        f"max_detour_ratio={config.max_detour_ratio}"
    )
    return config
