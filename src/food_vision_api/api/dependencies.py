"""FastAPI dependency injection factories.

Long-lived services are built once in the application lifespan and kept on
``app.state``; these factories hand them to routes.
"""

from typing import Annotated

from fastapi import Depends, Request

from food_vision_api.core.config import Settings, get_settings
from food_vision_api.core.exceptions import ServiceUnavailableError
from food_vision_api.services.pipeline import FoodAnalysisPipeline
from food_vision_api.services.reconciliation import NutritionReconciliationService
from food_vision_api.services.telemetry import GapTelemetryLogger

# Type aliases for cleaner route signatures
SettingsDep = Annotated[Settings, Depends(get_settings)]


def _state(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise ServiceUnavailableError(f"{name.replace('_', ' ').capitalize()} is not available")
    return service


def get_pipeline(request: Request) -> FoodAnalysisPipeline:
    """Get the food analysis pipeline."""
    return _state(request, "pipeline")


def get_reconciliation_service(request: Request) -> NutritionReconciliationService:
    """Get the nutrition reconciliation service."""
    return _state(request, "reconciliation")


def get_telemetry(request: Request) -> GapTelemetryLogger:
    """Get the gap telemetry logger."""
    return _state(request, "telemetry")


# Type aliases for service dependencies
PipelineDep = Annotated[FoodAnalysisPipeline, Depends(get_pipeline)]
ReconciliationDep = Annotated[NutritionReconciliationService, Depends(get_reconciliation_service)]
TelemetryDep = Annotated[GapTelemetryLogger, Depends(get_telemetry)]
