"""
Base classes for on-device food classification.

Defines the engine contract and its error family.
"""

from abc import ABC, abstractmethod
from typing import Any

from food_vision_api.models.detection import Prediction


class LocalInferenceError(Exception):
    """Base error for the local inference engine."""

    error_code = "LOCAL_INFERENCE_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class EngineInitError(LocalInferenceError):
    """Model or label resource missing or malformed; engine unusable until re-initialized."""

    error_code = "ENGINE_INIT_ERROR"


class EngineNotReady(LocalInferenceError):
    """classify() called before initialize() or after close()."""

    error_code = "ENGINE_NOT_READY"


class InferenceError(LocalInferenceError):
    """Runtime failure while classifying an image."""

    error_code = "INFERENCE_ERROR"


class LocalInferenceEngine(ABC):
    """
    Abstract base class for on-device classifiers.

    An engine owns one long-lived model resource. It is loaded once by
    ``initialize()``, reused by every ``classify()`` call and released by
    ``close()``.
    """

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """Whether the model is loaded and classify() can be called."""
        ...

    @abstractmethod
    def initialize(self) -> None:
        """
        Load the model and label set.

        Raises:
            EngineInitError: If the model or labels are missing or malformed
        """
        ...

    @abstractmethod
    def classify(self, image_data: bytes) -> list[Prediction]:
        """
        Classify a food image.

        Args:
            image_data: Raw image bytes (JPEG or PNG)

        Returns:
            Predictions above the confidence floor, highest first. Empty when
            nothing clears the floor.

        Raises:
            EngineNotReady: If the engine is not initialized
            InferenceError: If inference fails
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the model resource."""
        ...
