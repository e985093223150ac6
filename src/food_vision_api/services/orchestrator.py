"""
Fallback decision orchestrator.

Runs the on-device classifier, gates its result on confidence and escalates
to the remote analyzer when the local result is rejected or absent:

- top confidence >= high threshold: accept the local result
- medium <= top confidence < high: accept, but suggest escalation
- top confidence < medium, no prediction, engine error or not ready: escalate

A failed escalation is terminal for the request. There is no third tier.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from food_vision_api.core.result import Failure, Result, Success
from food_vision_api.models.detection import (
    HIGH_CONFIDENCE_THRESHOLD,
    MAX_PREDICTIONS,
    MEDIUM_CONFIDENCE_THRESHOLD,
    DetectionResult,
    DetectionSource,
    FallbackReason,
)
from food_vision_api.models.telemetry import FallbackLogEntry
from food_vision_api.services.local_inference import (
    EngineNotReady,
    InferenceContext,
    LocalInferenceError,
)
from food_vision_api.services.remote_analyzer import (
    RemoteAnalysis,
    RemoteAnalyzer,
    RemoteAnalyzerError,
)
from food_vision_api.services.telemetry import GapTelemetryLogger
from food_vision_api.utils import utc_now

logger = logging.getLogger(__name__)

DETECTION_FAILED_MESSAGE = "Detection failed, try manual entry"
DETECTION_FAILED_CODE = "DETECTION_FAILED"
NO_PREDICTION_MESSAGE = "Could not identify food in image"


class ConfidenceTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def classify_confidence(
    top_confidence: float,
    high: float = HIGH_CONFIDENCE_THRESHOLD,
    medium: float = MEDIUM_CONFIDENCE_THRESHOLD,
) -> ConfidenceTier:
    """Bucket a confidence value. Lower bounds are inclusive."""
    if top_confidence >= high:
        return ConfidenceTier.HIGH
    if top_confidence >= medium:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def moderate_confidence_message(top_confidence: float) -> str:
    return (
        f"Confidence is moderate ({round(top_confidence * 100)}%). "
        "Remote analysis may improve accuracy."
    )


class DetectionState(str, Enum):
    """Per-request progress: IDLE -> LOCAL_ATTEMPTED -> DECIDED."""

    IDLE = "idle"
    LOCAL_ATTEMPTED = "local_attempted"
    DECIDED = "decided"


_ALLOWED_TRANSITIONS = {
    DetectionState.IDLE: {DetectionState.LOCAL_ATTEMPTED, DetectionState.DECIDED},
    DetectionState.LOCAL_ATTEMPTED: {DetectionState.DECIDED},
    DetectionState.DECIDED: set(),
}


@dataclass
class DetectionRun:
    """State of one detection request."""

    state: DetectionState = DetectionState.IDLE

    def advance(self, to: DetectionState) -> None:
        if to not in _ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid detection transition {self.state.value} -> {to.value}")
        self.state = to


@dataclass
class DetectionOutcome:
    """Winning detection plus how it was reached."""

    result: DetectionResult
    local_result: DetectionResult | None = None
    escalated: bool = False
    fallback_reason: FallbackReason | None = None
    remote_analysis: RemoteAnalysis | None = None
    state: DetectionState = field(default=DetectionState.DECIDED)


class FallbackDecisionOrchestrator:
    """Decides between the local result and remote escalation for each image."""

    def __init__(
        self,
        context: InferenceContext,
        remote: RemoteAnalyzer | None,
        telemetry: GapTelemetryLogger | None = None,
        *,
        high_threshold: float = HIGH_CONFIDENCE_THRESHOLD,
        medium_threshold: float = MEDIUM_CONFIDENCE_THRESHOLD,
        max_predictions: int = MAX_PREDICTIONS,
        remote_timeout: float = 30.0,
    ):
        if medium_threshold > high_threshold:
            raise ValueError("medium_threshold must not exceed high_threshold")
        self.context = context
        self.remote = remote
        self.telemetry = telemetry
        self.high_threshold = high_threshold
        self.medium_threshold = medium_threshold
        self.max_predictions = max_predictions
        self.remote_timeout = remote_timeout

    async def detect(
        self, image_data: bytes, *, image_ref: str | None = None
    ) -> Result[DetectionOutcome]:
        """
        Detect the food in an image.

        Returns:
            Success with the winning detection, or Failure when an escalation
            was needed and the remote analyzer failed too.
        """
        run = DetectionRun()

        if not self.context.is_ready:
            logger.info("Local engine not ready, escalating")
            return await self._escalate(
                run, image_data, FallbackReason.ENGINE_NOT_READY, None, image_ref
            )

        run.advance(DetectionState.LOCAL_ATTEMPTED)
        try:
            predictions = await self.context.classify(image_data)
        except EngineNotReady as e:
            logger.warning(f"Local engine became unavailable: {e.message}")
            return await self._escalate(
                run, image_data, FallbackReason.ENGINE_NOT_READY, None, image_ref
            )
        except LocalInferenceError as e:
            logger.warning(f"Local inference failed: [{e.error_code}] {e.message}")
            return await self._escalate(
                run, image_data, FallbackReason.INFERENCE_ERROR, None, image_ref
            )
        except Exception:
            logger.exception("Unexpected error during local inference")
            return await self._escalate(
                run, image_data, FallbackReason.INFERENCE_ERROR, None, image_ref
            )

        if not predictions:
            local_result = DetectionResult(
                predictions=[],
                source=DetectionSource.LOCAL,
                escalation_suggested=True,
                escalation_reason=NO_PREDICTION_MESSAGE,
            )
            return await self._escalate(
                run, image_data, FallbackReason.NO_PREDICTION, local_result, image_ref
            )

        local_result = DetectionResult(predictions=predictions, source=DetectionSource.LOCAL)
        top_confidence = local_result.top_confidence
        tier = classify_confidence(top_confidence, self.high_threshold, self.medium_threshold)

        if tier == ConfidenceTier.HIGH:
            run.advance(DetectionState.DECIDED)
            logger.info(
                f"Accepted local result '{local_result.top_prediction.label}' ({top_confidence:.2f})"
            )
            return Success(DetectionOutcome(result=local_result, local_result=local_result))

        if tier == ConfidenceTier.MEDIUM:
            run.advance(DetectionState.DECIDED)
            suggested = local_result.model_copy(
                update={
                    "escalation_suggested": True,
                    "escalation_reason": moderate_confidence_message(top_confidence),
                }
            )
            logger.info(
                f"Accepted local result '{suggested.top_prediction.label}' "
                f"({top_confidence:.2f}) with escalation suggested"
            )
            return Success(DetectionOutcome(result=suggested, local_result=suggested))

        logger.info(f"Local confidence {top_confidence:.2f} below {self.medium_threshold}, escalating")
        low = local_result.model_copy(
            update={
                "escalation_suggested": True,
                "escalation_reason": f"Low confidence ({round(top_confidence * 100)}%)",
            }
        )
        return await self._escalate(run, image_data, FallbackReason.LOW_CONFIDENCE, low, image_ref)

    async def escalate(
        self,
        image_data: bytes,
        *,
        local_result: DetectionResult | None = None,
        image_ref: str | None = None,
    ) -> Result[DetectionOutcome]:
        """Escalate on explicit request (e.g. after a moderate-confidence suggestion)."""
        run = DetectionRun()
        if local_result is not None:
            run.advance(DetectionState.LOCAL_ATTEMPTED)
        logger.info("Escalation requested by caller")
        return await self._escalate(
            run, image_data, FallbackReason.LOW_CONFIDENCE, local_result, image_ref
        )

    async def _escalate(
        self,
        run: DetectionRun,
        image_data: bytes,
        reason: FallbackReason,
        local_result: DetectionResult | None,
        image_ref: str | None,
    ) -> Result[DetectionOutcome]:
        run.advance(DetectionState.DECIDED)

        if self.remote is None:
            logger.error(f"Escalation needed ({reason.value}) but no remote analyzer is configured")
            return Failure(DETECTION_FAILED_MESSAGE, error_code=DETECTION_FAILED_CODE)

        try:
            analysis = await asyncio.wait_for(
                self.remote.analyze(image_data, max_predictions=self.max_predictions),
                timeout=self.remote_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(
                f"Remote analyzer timed out after {self.remote_timeout}s (local: {reason.value})"
            )
            return Failure(DETECTION_FAILED_MESSAGE, exception=e, error_code=DETECTION_FAILED_CODE)
        except RemoteAnalyzerError as e:
            logger.error(
                f"Remote analyzer failed (local: {reason.value}): [{e.error_code}] {e.message}"
            )
            return Failure(DETECTION_FAILED_MESSAGE, exception=e, error_code=DETECTION_FAILED_CODE)

        if not analysis.predictions:
            logger.error(f"Remote analyzer returned no predictions (local: {reason.value})")
            return Failure(DETECTION_FAILED_MESSAGE, error_code=DETECTION_FAILED_CODE)

        remote_result = DetectionResult(
            predictions=analysis.predictions,
            source=DetectionSource.REMOTE,
        )
        primary = remote_result.top_prediction
        logger.info(
            f"Remote analyzer identified '{primary.label}' ({primary.confidence:.2f}) "
            f"after local {reason.value}"
        )

        if self.telemetry is not None:
            local_top = local_result.top_prediction if local_result else None
            await self.telemetry.record(
                FallbackLogEntry(
                    timestamp=utc_now(),
                    food_name_from_remote=primary.label,
                    local_top_label=local_top.label if local_top else None,
                    local_top_confidence=local_top.confidence if local_top else 0.0,
                    reason=reason,
                    image_ref=image_ref,
                )
            )

        return Success(
            DetectionOutcome(
                result=remote_result,
                local_result=local_result,
                escalated=True,
                fallback_reason=reason,
                remote_analysis=analysis,
                state=run.state,
            )
        )
