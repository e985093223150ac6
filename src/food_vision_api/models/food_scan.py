"""Pydantic models for the food scan and telemetry API contract."""

from datetime import datetime

from pydantic import BaseModel, Field

from .detection import DetectionResult, FallbackReason, Prediction
from .nutrition import FoodResult
from .telemetry import FoodGapCount

# =============================================================================
# Pipeline / Scan
# =============================================================================


class FoodAnalysis(BaseModel):
    """
    Result of analyzing one food photo.

    ``detection`` is the winning detection (local or remote); ``food`` is the
    top prediction reconciled with nutrition data. When the nutrition is an
    estimate, ``food.is_estimate`` is true.
    """

    detection: DetectionResult
    food: FoodResult
    alternatives: list[Prediction] = Field(
        default_factory=list, description="Other candidate foods, highest confidence first"
    )
    escalated: bool = Field(False, description="Whether the remote analyzer produced the result")
    fallback_reason: FallbackReason | None = Field(
        None, description="Why the local result was rejected, if it was"
    )
    local_detection: DetectionResult | None = Field(
        None, description="The local result, when the local engine produced one"
    )


class ScanErrorResponse(BaseModel):
    """Body returned for a failed scan."""

    error: str
    details: dict | None = None


# =============================================================================
# Nutrition
# =============================================================================


class NutritionLookupResponse(BaseModel):
    """Nutrition for a food looked up by name or provider id."""

    query: str
    food: FoodResult


# =============================================================================
# Telemetry
# =============================================================================


class TelemetrySummaryResponse(BaseModel):
    """Escalation counts over a period."""

    since: datetime
    until: datetime
    total_count: int
    unique_foods: int
    per_food_counts: dict[str, int]
    per_reason_counts: dict[FallbackReason, int]
    top_foods: list[FoodGapCount]


class GapsResponse(BaseModel):
    """Most common foods needing remote analysis, all time."""

    gaps: list[FoodGapCount]


class PurgeResponse(BaseModel):
    """Result of a retention purge."""

    deleted: int
    cutoff: datetime


# =============================================================================
# Health
# =============================================================================


class HealthResponse(BaseModel):
    status: str
    local_engine_ready: bool
    remote_analyzer_healthy: bool
    nutrition_lookup_healthy: bool | None = Field(
        None, description="None when no nutrition provider is configured"
    )
    telemetry_backend: str
    telemetry_failures: int
