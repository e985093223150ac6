"""
Base classes and models for the remote analyzer.

The remote analyzer is the escalation target: a slower, more accurate
image classifier reached over the network. Providers implement
``RemoteAnalyzer`` and return a ``RemoteAnalysis``.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from food_vision_api.models.detection import MAX_PREDICTIONS, Prediction
from food_vision_api.models.nutrition import NutritionRecord


class RemoteFoodItem(BaseModel):
    """Per-item portion and nutrition estimate from the remote analyzer."""

    label: str
    portion: str | None = Field(None, description='Estimated portion, e.g. "1 slice (120g)"')
    nutrition: NutritionRecord | None = Field(
        None, description="Estimated nutrition for the portion"
    )


class RemoteAnalysis(BaseModel):
    """Complete result from one remote analysis."""

    predictions: list[Prediction] = Field(
        default_factory=list, description="Ranked predictions, highest confidence first"
    )
    items: list[RemoteFoodItem] = Field(
        default_factory=list, description="Portion/nutrition estimates aligned with predictions"
    )
    raw_response: str = Field("", description="Raw response from the provider (for debugging)")
    provider: str = Field(..., description="Provider that generated this result")
    processing_time_ms: int = Field(0, ge=0, description="Time taken to process in milliseconds")

    @property
    def primary_food(self) -> Prediction | None:
        """Get the highest confidence prediction."""
        return self.predictions[0] if self.predictions else None

    def estimate_for(self, label: str) -> RemoteFoodItem | None:
        """Find the provider's estimate for a predicted label (case-insensitive)."""
        wanted = label.strip().lower()
        for item in self.items:
            if item.label.strip().lower() == wanted:
                return item
        return None


class RemoteAnalyzerError(Exception):
    """Error during remote analysis."""

    def __init__(
        self,
        message: str,
        error_code: str = "REMOTE_ANALYZER_ERROR",
        provider: str = "unknown",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.provider = provider
        self.details = details or {}


class RemoteAnalyzer(ABC):
    """
    Abstract base class for remote analyzers.

    All providers must implement this interface.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of this provider."""
        ...

    @abstractmethod
    async def analyze(
        self,
        image_data: bytes,
        *,
        max_predictions: int = MAX_PREDICTIONS,
    ) -> RemoteAnalysis:
        """
        Identify the food in an image.

        Args:
            image_data: Raw image bytes (JPEG or PNG)
            max_predictions: Maximum number of ranked predictions to return

        Returns:
            RemoteAnalysis with at least one prediction

        Raises:
            RemoteAnalyzerError: If analysis fails or identifies nothing
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the provider is available and healthy.

        Returns:
            True if the provider is ready to accept requests
        """
        ...

    async def close(self) -> None:
        """Release provider resources."""
        return None
