"""
Food analysis pipeline.

image -> detection (local or escalated) -> nutrition reconciliation.
"""

import logging

from food_vision_api.core.result import Failure, Result, Success
from food_vision_api.models.detection import DetectionResult
from food_vision_api.models.food_scan import FoodAnalysis
from food_vision_api.models.nutrition import FoodResult, NutritionSource

from .orchestrator import DetectionOutcome, FallbackDecisionOrchestrator
from .reconciliation import ESTIMATE_PORTION, NutritionReconciliationService

logger = logging.getLogger(__name__)


class FoodAnalysisPipeline:
    """Runs detection and reconciles the winning food with nutrition data."""

    def __init__(
        self,
        orchestrator: FallbackDecisionOrchestrator,
        reconciliation: NutritionReconciliationService,
    ):
        self.orchestrator = orchestrator
        self.reconciliation = reconciliation

    async def analyze(self, image_data: bytes, *, image_ref: str | None = None) -> Result[FoodAnalysis]:
        """Analyze a food photo. Fails only if detection itself failed."""
        detection = await self.orchestrator.detect(image_data, image_ref=image_ref)
        return await self._reconcile(detection, image_ref)

    async def escalate(
        self,
        image_data: bytes,
        *,
        local_result: DetectionResult | None = None,
        image_ref: str | None = None,
    ) -> Result[FoodAnalysis]:
        """Analyze a photo with the remote analyzer, as requested by the caller."""
        detection = await self.orchestrator.escalate(
            image_data, local_result=local_result, image_ref=image_ref
        )
        return await self._reconcile(detection, image_ref)

    async def resolve_alternative(self, food_name: str, *, image_ref: str | None = None) -> FoodResult:
        """Resolve nutrition for an alternative the user picked instead of the top match."""
        return await self.reconciliation.resolve(food_name, image_ref=image_ref)

    async def _reconcile(
        self, detection: Result[DetectionOutcome], image_ref: str | None
    ) -> Result[FoodAnalysis]:
        if isinstance(detection, Failure):
            return detection

        outcome = detection.data
        top = outcome.result.top_prediction
        if top is None:
            # Accepted and escalated results always carry a prediction
            return Failure("Detection returned no food", error_code="DETECTION_FAILED")

        food = await self.reconciliation.resolve(top.search_term, image_ref=image_ref)

        if food.nutrition_source == NutritionSource.GENERIC_ESTIMATE:
            food = self._remote_estimate(outcome, image_ref) or food

        return Success(
            FoodAnalysis(
                detection=outcome.result,
                food=food,
                alternatives=outcome.result.alternatives,
                escalated=outcome.escalated,
                fallback_reason=outcome.fallback_reason,
                local_detection=outcome.local_result,
            )
        )

    @staticmethod
    def _remote_estimate(outcome: DetectionOutcome, image_ref: str | None) -> FoodResult | None:
        """Use the remote analyzer's own nutrition estimate, if it gave one."""
        analysis = outcome.remote_analysis
        top = outcome.result.top_prediction
        if analysis is None or top is None:
            return None

        item = analysis.estimate_for(top.label)
        if item is None or item.nutrition is None:
            return None

        logger.info(f"Using remote nutrition estimate for '{top.label}'")
        return FoodResult(
            name=top.display_name,
            portion=item.portion or ESTIMATE_PORTION,
            nutrition=item.nutrition,
            image_ref=image_ref,
            nutrition_source=NutritionSource.REMOTE_ESTIMATE,
        )
