"""Pydantic models for API schemas."""

from .detection import (
    MAX_PREDICTIONS,
    DetectionResult,
    DetectionSource,
    FallbackReason,
    Prediction,
    humanize_label,
)
from .nutrition import (
    GENERIC_ESTIMATE,
    FoodResult,
    NutritionRecord,
    NutritionSource,
)
from .food_scan import (
    FoodAnalysis,
    GapsResponse,
    HealthResponse,
    NutritionLookupResponse,
    PurgeResponse,
    ScanErrorResponse,
    TelemetrySummaryResponse,
)
from .telemetry import (
    ExportBatch,
    ExportEntry,
    FallbackLogEntry,
    FoodGapCount,
    TelemetrySummary,
)

__all__ = [
    # Detection
    "MAX_PREDICTIONS",
    "DetectionResult",
    "DetectionSource",
    "FallbackReason",
    "Prediction",
    "humanize_label",
    # Nutrition
    "GENERIC_ESTIMATE",
    "FoodResult",
    "NutritionRecord",
    "NutritionSource",
    # API
    "FoodAnalysis",
    "GapsResponse",
    "HealthResponse",
    "NutritionLookupResponse",
    "PurgeResponse",
    "ScanErrorResponse",
    "TelemetrySummaryResponse",
    # Telemetry
    "ExportBatch",
    "ExportEntry",
    "FallbackLogEntry",
    "FoodGapCount",
    "TelemetrySummary",
]
