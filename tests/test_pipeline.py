"""Unit tests for the food analysis pipeline."""

import pytest

from food_vision_api.core.result import Failure, Success
from food_vision_api.models.detection import DetectionSource, FallbackReason
from food_vision_api.models.nutrition import NutritionRecord, NutritionSource
from food_vision_api.services.remote_analyzer import RemoteAnalyzerError


class TestFoodAnalysisPipeline:
    """Tests for FoodAnalysisPipeline."""

    @pytest.mark.asyncio
    async def test_local_result_with_database_nutrition(self, pipeline, engine, lookup, image_bytes):
        engine.predictions = [("pizza", 0.85), ("flatbread", 0.12)]

        result = await pipeline.analyze(image_bytes, image_ref="img-1")

        assert isinstance(result, Success)
        analysis = result.data
        assert analysis.escalated is False
        assert analysis.detection.source == DetectionSource.LOCAL
        assert analysis.food.name == "Pizza, cheese"
        assert analysis.food.nutrition_source == NutritionSource.DATABASE
        assert analysis.food.image_ref == "img-1"
        assert [p.label for p in analysis.alternatives] == ["flatbread"]
        assert lookup.queries == ["pizza"]

    @pytest.mark.asyncio
    async def test_label_used_as_search_term(self, pipeline, engine, lookup, image_bytes):
        engine.predictions = [("apple_pie", 0.9)]

        result = await pipeline.analyze(image_bytes)

        assert lookup.queries == ["apple pie"]
        assert result.data.food.is_estimate is True
        assert result.data.food.name == "apple pie"

    @pytest.mark.asyncio
    async def test_escalated_result_reconciled(self, pipeline, engine, image_bytes):
        engine.predictions = [("bread", 0.2)]

        result = await pipeline.analyze(image_bytes)

        analysis = result.data
        assert analysis.escalated is True
        assert analysis.fallback_reason == FallbackReason.LOW_CONFIDENCE
        assert analysis.detection.source == DetectionSource.REMOTE
        assert analysis.local_detection.top_prediction.label == "bread"
        assert analysis.food.provider_food_id == "1002"

    @pytest.mark.asyncio
    async def test_remote_estimate_replaces_generic_estimate(self, pipeline, engine, remote, image_bytes):
        """Test the remote analyzer's own nutrition is used when the database has nothing."""
        engine.predictions = []
        remote.label = "Dragon fruit bowl"
        remote.portion = "1 bowl (300g)"
        remote.nutrition = NutritionRecord(calories=320, protein=6, carbs=58, fat=9)

        result = await pipeline.analyze(image_bytes)

        food = result.data.food
        assert food.nutrition_source == NutritionSource.REMOTE_ESTIMATE
        assert food.is_estimate is True
        assert food.portion == "1 bowl (300g)"
        assert food.nutrition.calories == 320

    @pytest.mark.asyncio
    async def test_generic_estimate_without_remote_nutrition(self, pipeline, engine, remote, image_bytes):
        engine.predictions = []
        remote.label = "Dragon fruit bowl"

        result = await pipeline.analyze(image_bytes)

        food = result.data.food
        assert food.nutrition_source == NutritionSource.GENERIC_ESTIMATE
        assert food.portion == "1 serving"
        assert food.nutrition.calories == 200

    @pytest.mark.asyncio
    async def test_detection_failure_propagates(self, pipeline, engine, remote, lookup, image_bytes):
        engine.predictions = [("bread", 0.1)]
        remote.error = RemoteAnalyzerError("down")

        result = await pipeline.analyze(image_bytes)

        assert isinstance(result, Failure)
        assert result.error_code == "DETECTION_FAILED"
        assert lookup.queries == []

    @pytest.mark.asyncio
    async def test_escalate_on_request(self, pipeline, remote, image_bytes):
        result = await pipeline.escalate(image_bytes)

        assert isinstance(result, Success)
        assert result.data.escalated is True
        assert result.data.local_detection is None
        assert remote.calls == 1

    @pytest.mark.asyncio
    async def test_resolve_alternative(self, pipeline):
        food = await pipeline.resolve_alternative("Margherita pizza", image_ref="img-9")

        assert food.name == "Pizza, margherita"
        assert food.image_ref == "img-9"
