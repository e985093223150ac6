"""Pydantic models for food detection results (local and remote)."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

# Hard cap on ranked predictions carried by a detection result
MAX_PREDICTIONS = 5

# Confidence gates and the floor below which ranked predictions are dropped
HIGH_CONFIDENCE_THRESHOLD = 0.7
MEDIUM_CONFIDENCE_THRESHOLD = 0.4
MIN_CONFIDENCE_FLOOR = 0.1


class DetectionSource(str, Enum):
    """Source of a detection result."""

    LOCAL = "local"  # On-device classifier
    REMOTE = "remote"  # Remote analyzer (escalation target)


class FallbackReason(str, Enum):
    """Why the local result was rejected and the remote analyzer invoked."""

    LOW_CONFIDENCE = "low_confidence"
    NO_PREDICTION = "no_prediction"
    INFERENCE_ERROR = "inference_error"
    ENGINE_NOT_READY = "engine_not_ready"

    @property
    def readable(self) -> str:
        return _READABLE_REASONS[self]


_READABLE_REASONS = {
    FallbackReason.LOW_CONFIDENCE: "Low confidence",
    FallbackReason.NO_PREDICTION: "No prediction",
    FallbackReason.INFERENCE_ERROR: "Local inference error",
    FallbackReason.ENGINE_NOT_READY: "Local model not ready",
}


def humanize_label(label: str) -> str:
    """Turn a classifier label into a display name ("apple_pie" -> "Apple Pie")."""
    words = label.replace("_", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


class Prediction(BaseModel):
    """A single ranked (label, confidence) pair."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., min_length=1, description="Classifier label")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Confidence score 0-1")
    display_name: str = Field("", description="Human-readable food name")

    @model_validator(mode="before")
    @classmethod
    def default_display_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("display_name") and data.get("label"):
            data = {**data, "display_name": humanize_label(str(data["label"]))}
        return data

    @property
    def search_term(self) -> str:
        """Label phrased as a free-text nutrition query."""
        return self.label.replace("_", " ").strip()


class DetectionResult(BaseModel):
    """
    Ranked predictions from one detector.

    Predictions are kept sorted by descending confidence and capped at
    MAX_PREDICTIONS; ``top_confidence`` is derived from the first one.
    """

    model_config = ConfigDict(frozen=True)

    predictions: list[Prediction] = Field(default_factory=list)
    source: DetectionSource = DetectionSource.LOCAL
    escalation_suggested: bool = False
    escalation_reason: str | None = None

    @field_validator("predictions")
    @classmethod
    def rank_predictions(cls, predictions: list[Prediction]) -> list[Prediction]:
        ranked = sorted(predictions, key=lambda p: p.confidence, reverse=True)
        return ranked[:MAX_PREDICTIONS]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def top_confidence(self) -> float:
        if not self.predictions:
            return 0.0
        return self.predictions[0].confidence

    @property
    def top_prediction(self) -> Prediction | None:
        return self.predictions[0] if self.predictions else None

    @property
    def alternatives(self) -> list[Prediction]:
        return self.predictions[1:]
