"""
response_schemas.py
───────────────────
Strict contracts for structured model output.

A response is accepted only if its whole body is a JSON object matching
the schema. A body wrapped in a single Markdown code fence is unwrapped
first; nothing else is salvaged.
"""

import json
import logging
from typing import List, Optional, Type, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from agents.route_verification.errors import ProviderResponseError
from agents.route_verification.route_models import WaypointType

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class ExtractedWaypointSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    order: int = Field(..., ge=0)
    type: WaypointType
    address: str = Field(..., min_length=1)
    notes: Optional[str] = None

    @field_validator("address", mode="before")
    def _strip_address(cls, value):
        return str(value).strip() if value is not None else value


class ExtractionResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    waypoints: List[ExtractedWaypointSchema]


class VerifiedWaypointSchema(ExtractedWaypointSchema):
    verified: bool = True


class VerificationResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    verified: bool
    verifiedWaypoints: List[VerifiedWaypointSchema]
    issues: List[str] = Field(default_factory=list)
    confidence: float = Field(..., ge=0.0, le=1.0)


class GeocodeEstimateResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)
    formatted_address: str = Field(
        ...,
        validation_alias=AliasChoices("formattedAddress", "formatted_address"),
    )


def _unwrap_fence(raw: str) -> str:
    if raw.startswith("```") and raw.endswith("```"):
        body = raw[3:-3]
        if body.startswith("json"):
            body = body[4:]
        return body.strip()
    return raw


def parse_structured(raw: Optional[str], schema: Type[T]) -> T:
    """
    Decode `raw` as JSON and validate it against `schema`.

    Raises ProviderResponseError on empty output, invalid JSON, a
    non-object body, or a schema violation.
    """
    if raw is None or not raw.strip():
        raise ProviderResponseError("Empty response body")

    body = _unwrap_fence(raw.strip())
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise ProviderResponseError(f"Response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ProviderResponseError(f"Expected a JSON object, got {type(data).__name__}")

    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise ProviderResponseError(
            f"Response does not match {schema.__name__}: {e.error_count()} error(s)"
        ) from e
