"""
llm_client.py
─────────────
Thin wrapper over google.generativeai used by the extractor, the
verifier and the LLM geocode estimator.

One request per call: instruction text plus, optionally, the permit as
an inline blob. No retries here; cascading and fallback are the callers'
concern.
"""

import logging
from typing import Dict, Optional

import google.generativeai as genai

from agents.route_verification.provider_config import ProviderDescriptor
from agents.route_verification.route_models import SourceDocument

logger = logging.getLogger(__name__)


class GeminiModelClient:
    """
    Builds one GenerativeModel per provider id on first use.
    """

    def __init__(self, api_key: str, max_output_tokens: int = 2000, temperature: float = 0.1):
        genai.configure(api_key=api_key)
        self.max_output_tokens = max_output_tokens
        self.temperature = temperature
        self._models: Dict[str, genai.GenerativeModel] = {}
        logger.info("[GeminiModelClient] Configured")

    def _model(self, provider_id: str) -> genai.GenerativeModel:
        if provider_id not in self._models:
            self._models[provider_id] = genai.GenerativeModel(provider_id)
        return self._models[provider_id]

    def generate(
        self,
        provider: ProviderDescriptor,
        instruction: str,
        document: Optional[SourceDocument] = None,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        """
        Send one request and return the raw response text.

        Raises whatever the client library raises (API errors, timeouts).
        """
        parts = [instruction]
        if document is not None:
            parts.append({"mime_type": document.media_type, "data": document.content})

        generation_config = {
            "max_output_tokens":  max_output_tokens or self.max_output_tokens,
            "temperature":        self.temperature,
            "response_mime_type": "application/json",
        }

        logger.debug(f"[GeminiModelClient] → {provider.id} (timeout={provider.timeout}s)")
        response = self._model(provider.id).generate_content(
            parts,
            generation_config=generation_config,
            request_options={"timeout": provider.timeout},
        )
        return response.text
