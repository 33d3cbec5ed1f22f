import json
import logging
import sys

from dotenv import load_dotenv

from agents.route_verification.geocoder import Geocoder, GoogleMapsGeocoder, LLMGeocodeEstimator
from agents.route_verification.llm_client import GeminiModelClient
from agents.route_verification.model_cascade_extractor import ModelCascadeExtractor
from agents.route_verification.provider_config import PipelineConfig, load_config
from agents.route_verification.route_verification_agent import RouteVerificationAgent
from agents.route_verification.waypoint_verifier import WaypointVerifier
from execution.provider_failure_logger import ProviderFailureLogger
from execution.route_verification_logger import RouteVerificationLogger

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s"
)


def create_agent(
    config: PipelineConfig | None = None,
    model_client=None,
    session=None,
    geocode_cache=None,
) -> RouteVerificationAgent:
    """
    Agent Factory

    Responsibilities:
    - Load configuration (environment / .env) once
    - Build the model client and geocoding providers
    - Wire the pipeline stages and ledgers together

    NO business logic must exist here.
    """

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    if config is None:
        load_dotenv()
        config = load_config()

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------
    client = model_client or GeminiModelClient(
        api_key=config.gemini_api_key,
        max_output_tokens=config.max_output_tokens,
        temperature=config.temperature,
    )
    failure_logger = ProviderFailureLogger(config.failure_log_path)
    run_logger = RouteVerificationLogger(config.run_log_path) if config.run_log_path else None

    primary = None
    if config.primary_geocoder_enabled:
        primary = GoogleMapsGeocoder(config.google_maps_api_key, timeout=config.google_maps_timeout, session=session)
    fallback = None
    if config.geocode_estimation_provider is not None:
        fallback = LLMGeocodeEstimator(client, config.geocode_estimation_provider)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    return RouteVerificationAgent(
        extractor=ModelCascadeExtractor(client, config.extraction_providers, failure_logger),
        verifier=WaypointVerifier(client, config.verification_provider, failure_logger),
        geocoder=Geocoder(
            primary=primary,
            fallback=fallback,
            delay_s=config.geocode_delay_s,
            cache=geocode_cache,
            failure_logger=failure_logger,
        ),
        config=config,
        run_logger=run_logger,
    )


# ----------------------------------------------------------------------
# Entry Point
# ----------------------------------------------------------------------
if __name__ == "__main__":
    from agents.route_verification.route_models import SourceDocument

    if len(sys.argv) != 2:
        print("usage: python app.py <permit.png|permit.pdf>")
        sys.exit(2)

    agent = create_agent()
    report = agent.process_document(SourceDocument.from_path(sys.argv[1]))
    print(json.dumps(report.to_dict(), indent=2))
