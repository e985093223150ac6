"""Application configuration using Pydantic Settings."""

from enum import Enum
from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from food_vision_api.models.detection import (
    HIGH_CONFIDENCE_THRESHOLD,
    MAX_PREDICTIONS,
    MEDIUM_CONFIDENCE_THRESHOLD,
    MIN_CONFIDENCE_FLOOR,
)


class RemoteAnalyzerProvider(str, Enum):
    """Supported remote analyzer providers."""
    OLLAMA = "ollama"


class TelemetryBackend(str, Enum):
    """Where gap telemetry entries are stored."""
    MONGO = "mongo"
    MEMORY = "memory"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Confidence gating
    high_confidence_threshold: float = Field(HIGH_CONFIDENCE_THRESHOLD, ge=0.0, le=1.0)
    medium_confidence_threshold: float = Field(MEDIUM_CONFIDENCE_THRESHOLD, ge=0.0, le=1.0)
    max_predictions: int = Field(MAX_PREDICTIONS, ge=1, le=MAX_PREDICTIONS)
    min_confidence_floor: float = Field(MIN_CONFIDENCE_FLOOR, ge=0.0, le=1.0)

    # On-device classifier
    classifier_model_path: str = "models/food_classifier.onnx"
    classifier_labels_path: str = "models/food_labels.txt"
    classifier_normalization: Literal["minus_one_to_one", "zero_to_one"] = "minus_one_to_one"
    classifier_apply_softmax: bool = False

    # Remote analyzer (escalation target)
    remote_analyzer_provider: RemoteAnalyzerProvider = RemoteAnalyzerProvider.OLLAMA
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llava:7b"
    remote_analyzer_timeout: float = 30.0

    # Nutrition lookup (USDA FoodData Central)
    usda_api_key: str = ""
    usda_api_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    usda_enabled: bool = True
    lookup_timeout: float = 30.0
    lookup_candidate_limit: int = Field(5, ge=1, le=50)

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    db_name: str = "food_vision_db"

    # Gap telemetry
    telemetry_backend: TelemetryBackend = TelemetryBackend.MONGO
    telemetry_retention_days: int = Field(30, ge=1)
    telemetry_purge_enabled: bool = True
    telemetry_purge_hour: int = Field(3, ge=0, le=23)  # UTC

    # App
    debug: bool = False
    log_level: str = "INFO"
    app_name: str = "Food Vision API"
    api_version: str = "1.0.0"
    max_image_bytes: int = 10 * 1024 * 1024  # 10 MB

    @model_validator(mode="after")
    def check_threshold_order(self) -> "Settings":
        if self.medium_confidence_threshold > self.high_confidence_threshold:
            raise ValueError(
                "medium_confidence_threshold must not exceed high_confidence_threshold"
            )
        return self

    @property
    def is_usda_configured(self) -> bool:
        """Check if USDA nutrition lookup can be used."""
        return self.usda_enabled and bool(self.usda_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
