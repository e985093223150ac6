"""Business logic services."""

from .orchestrator import FallbackDecisionOrchestrator
from .pipeline import FoodAnalysisPipeline
from .reconciliation import NutritionReconciliationService
from .telemetry import GapTelemetryLogger

__all__ = [
    "FallbackDecisionOrchestrator",
    "FoodAnalysisPipeline",
    "GapTelemetryLogger",
    "NutritionReconciliationService",
]
