"""Pydantic models for gap telemetry (foods the local model failed on)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .detection import FallbackReason


class FallbackLogEntry(BaseModel):
    """
    One escalation event.

    Created once per escalation, only ``exported`` is ever flipped afterwards.
    """

    id: str | None = Field(None, description="Store-assigned identifier")
    timestamp: datetime = Field(..., description="When the escalation happened (UTC)")
    food_name_from_remote: str = Field(..., description="Food identified by the remote analyzer")
    local_top_label: str | None = Field(None, description="What the local model guessed, if anything")
    local_top_confidence: float = Field(
        0.0, ge=0.0, le=1.0, description="Confidence of the local guess (0 if none)"
    )
    reason: FallbackReason
    image_ref: str | None = Field(None, description="Opaque reference to the source image")
    exported: bool = False


class FoodGapCount(BaseModel):
    """Escalation count for one food name."""

    food_name: str
    count: int


class TelemetrySummary(BaseModel):
    """Aggregate view of escalations in a date range."""

    since: datetime
    until: datetime
    total_count: int = 0
    per_food_counts: dict[str, int] = Field(
        default_factory=dict, description="Food name -> count, highest count first"
    )
    per_reason_counts: dict[FallbackReason, int] = Field(default_factory=dict)

    @property
    def unique_foods(self) -> int:
        return len(self.per_food_counts)

    def top_foods(self, limit: int = 10) -> list[FoodGapCount]:
        return [
            FoodGapCount(food_name=name, count=count)
            for name, count in list(self.per_food_counts.items())[:limit]
        ]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExportEntry(_CamelModel):
    """A single exported escalation, keyed for training-data tooling."""

    timestamp: datetime
    food_name: str
    local_prediction: str | None = None
    local_confidence: float = 0.0
    fallback_reason: FallbackReason
    image_ref: str | None = None

    @classmethod
    def from_log_entry(cls, entry: FallbackLogEntry) -> "ExportEntry":
        return cls(
            timestamp=entry.timestamp,
            food_name=entry.food_name_from_remote,
            local_prediction=entry.local_top_label,
            local_confidence=entry.local_top_confidence,
            fallback_reason=entry.reason,
            image_ref=entry.image_ref,
        )


class ExportBatch(_CamelModel):
    """One export call's worth of escalations."""

    export_date: datetime
    period_start: datetime
    period_end: datetime
    total_entries: int
    entries: list[ExportEntry] = Field(default_factory=list)

    def to_json(self) -> str:
        """Serialize with camelCase keys."""
        return self.model_dump_json(by_alias=True, indent=2)
