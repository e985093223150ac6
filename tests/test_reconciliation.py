"""Unit tests for the nutrition reconciliation service."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import FakeLookup, usda_candidate
from food_vision_api.core.result import Failure, Success
from food_vision_api.models.nutrition import GENERIC_ESTIMATE, NutritionSource
from food_vision_api.services.nutrition_lookup import (
    NutrientValue,
    NutritionCandidate,
    NutritionLookupError,
    USDANutritionLookup,
)
from food_vision_api.services.reconciliation import (
    NutritionReconciliationService,
    extract_nutrition,
    find_nutrient_value,
    format_serving_size,
)


class SlowLookup(FakeLookup):
    async def search_food(self, query, *, max_results=5):
        await asyncio.sleep(1)
        return []


def named_candidate(food_id: str, description: str, *nutrients: tuple[str, float, str]):
    """Candidate whose nutrients carry names only, no ids."""
    return NutritionCandidate(
        food_id=food_id,
        description=description,
        nutrients=[NutrientValue(name=name, value=value, unit=unit) for name, value, unit in nutrients],
    )


class TestFindNutrientValue:
    """Tests for nutrient matching."""

    def test_id_match_wins_over_name(self):
        nutrients = [
            NutrientValue(name="Energy", value=999, unit="kcal"),
            NutrientValue(nutrient_id=1008, name="Something else", value=150, unit="kcal"),
        ]

        assert find_nutrient_value(nutrients, 1008, ("energy",)) == 150

    def test_name_fallback_is_case_insensitive_substring(self):
        nutrients = [NutrientValue(name="Carbohydrate, by difference", value=30, unit="g")]

        assert find_nutrient_value(nutrients, 1005, ("carbohydrate",)) == 30

    def test_aliases_tried_in_order(self):
        nutrients = [
            NutrientValue(name="Fatty acids, total saturated", value=3, unit="g"),
            NutrientValue(name="Total lipid (fat)", value=12, unit="g"),
        ]

        assert find_nutrient_value(nutrients, 1004, ("total lipid (fat)", "total fat", "fat")) == 12

    def test_skips_units(self):
        nutrients = [
            NutrientValue(name="Energy", value=1100, unit="kJ"),
            NutrientValue(name="Energy", value=263, unit="kcal"),
        ]

        assert find_nutrient_value(nutrients, 1008, ("energy",), skip_units=("kj",)) == 263

    def test_missing(self):
        assert find_nutrient_value([], 1003, ("protein",)) is None


class TestExtractNutrition:
    """Tests for pulling calories and macros out of a candidate."""

    def test_extracts_tagged_values(self):
        record = extract_nutrition(usda_candidate("1", "Pizza", 266, 11.4, 33.3, 9.7))

        assert record.calories == 266
        assert record.protein == 11.4
        assert record.carbs == 33.3
        assert record.fat == 9.7

    def test_extracts_named_values(self):
        candidate = named_candidate(
            "2",
            "Apple",
            ("Energy", 52, "kcal"),
            ("Protein", 0.3, "g"),
            ("Carbohydrates", 14, "g"),
            ("Total Fat", 0.2, "g"),
        )

        record = extract_nutrition(candidate)

        assert (record.calories, record.protein, record.carbs, record.fat) == (52, 0.3, 14, 0.2)

    def test_energy_in_kj_only_is_ignored(self):
        candidate = named_candidate("3", "Bar", ("Energy", 1500, "kJ"), ("Protein", 5, "g"))

        record = extract_nutrition(candidate)

        assert record.calories == 0
        assert record.protein == 5

    def test_all_zero_is_unusable(self):
        assert extract_nutrition(usda_candidate("4", "Water")) is None

    def test_no_nutrients_is_unusable(self):
        assert extract_nutrition(NutritionCandidate(food_id="5", description="Empty")) is None

    def test_out_of_range_is_unusable(self):
        assert extract_nutrition(usda_candidate("6", "Bad", 20000, 1, 1, 1)) is None
        assert extract_nutrition(usda_candidate("7", "Bad", 100, 1500, 1, 1)) is None


class TestFormatServingSize:
    @pytest.mark.parametrize(
        "size,unit,expected",
        [
            (100.0, "g", "100g"),
            (12.5, "g", "12.5g"),
            (240, "ml", "240ml"),
            (None, "g", "100g"),
            (30.0, None, "100g"),
        ],
    )
    def test_format(self, size, unit, expected):
        assert format_serving_size(size, unit) == expected


class TestNutritionReconciliationService:
    """Tests for NutritionReconciliationService.resolve."""

    @pytest.mark.asyncio
    async def test_database_match(self, reconciliation):
        food = await reconciliation.resolve("pizza", image_ref="img-1")

        assert food.name == "Pizza, cheese"
        assert food.portion == "100g"
        assert food.nutrition.calories == 266
        assert food.nutrition_source == NutritionSource.DATABASE
        assert food.is_estimate is False
        assert food.provider_food_id == "1001"
        assert food.image_ref == "img-1"

    @pytest.mark.asyncio
    async def test_unknown_food_gets_flagged_estimate(self, reconciliation):
        """Test a food with no candidates falls back to the generic estimate."""
        food = await reconciliation.resolve("xyzfood123")

        assert food.name == "xyzfood123"
        assert food.portion == "1 serving"
        assert food.nutrition == GENERIC_ESTIMATE
        assert (food.nutrition.calories, food.nutrition.protein) == (200, 10)
        assert (food.nutrition.carbs, food.nutrition.fat) == (25, 8)
        assert food.is_estimate is True
        assert food.nutrition_source == NutritionSource.GENERIC_ESTIMATE

    @pytest.mark.asyncio
    async def test_skips_unusable_candidates_in_order(self, lookup, reconciliation):
        lookup.results["ramen"] = [
            usda_candidate("1", "Ramen broth"),
            usda_candidate("2", "Ramen, pork", 450, 20, 55, 15),
            usda_candidate("3", "Ramen, veggie", 380, 12, 60, 9),
        ]

        food = await reconciliation.resolve("ramen")

        assert food.provider_food_id == "2"
        assert food.nutrition.calories == 450

    @pytest.mark.asyncio
    async def test_all_candidates_unusable(self, lookup, reconciliation):
        lookup.results["ice"] = [usda_candidate("1", "Ice"), usda_candidate("2", "Ice cubes")]

        food = await reconciliation.resolve("ice")

        assert food.is_estimate is True

    @pytest.mark.asyncio
    async def test_resolution_is_deterministic(self, reconciliation):
        first = await reconciliation.resolve("pizza")
        second = await reconciliation.resolve("pizza")

        assert first == second

    @pytest.mark.asyncio
    async def test_candidate_limit_passed_to_lookup(self, lookup):
        lookup.results["rice"] = [
            usda_candidate("1", "Rice water"),
            usda_candidate("2", "Rice starch"),
            usda_candidate("3", "Rice, white", 130, 2.7, 28, 0.3),
        ]
        service = NutritionReconciliationService(lookup, candidate_limit=2)

        food = await service.resolve("rice")

        # The usable third record is beyond the limit
        assert food.is_estimate is True
        assert lookup.queries == ["rice"]

    @pytest.mark.asyncio
    async def test_lookup_error_falls_back_to_estimate(self, lookup, reconciliation):
        lookup.error = NutritionLookupError("rate limited", error_code="API_ERROR", provider="fake")

        food = await reconciliation.resolve("pizza")

        assert food.nutrition_source == NutritionSource.GENERIC_ESTIMATE

    @pytest.mark.asyncio
    async def test_non_json_lookup_body_falls_back_to_estimate(self):
        response = MagicMock(status_code=200)
        response.json = MagicMock(side_effect=json.JSONDecodeError("Expecting value", "", 0))
        client = AsyncMock()
        client.get.return_value = response
        service = NutritionReconciliationService(USDANutritionLookup(api_key="k", client=client))

        food = await service.resolve("toast")

        assert food.nutrition_source == NutritionSource.GENERIC_ESTIMATE
        assert food.name == "toast"

    @pytest.mark.asyncio
    async def test_null_nutrients_candidate_skipped(self):
        response = MagicMock(status_code=200)
        response.json = MagicMock(
            return_value={"foods": [{"fdcId": 1, "description": "Toast", "foodNutrients": None}]}
        )
        client = AsyncMock()
        client.get.return_value = response
        service = NutritionReconciliationService(USDANutritionLookup(api_key="k", client=client))

        food = await service.resolve("toast")

        assert food.is_estimate is True
        assert food.nutrition == GENERIC_ESTIMATE

    @pytest.mark.asyncio
    async def test_lookup_timeout_falls_back_to_estimate(self):
        service = NutritionReconciliationService(SlowLookup(), timeout=0.01)

        food = await service.resolve("pizza")

        assert food.is_estimate is True

    @pytest.mark.asyncio
    async def test_no_lookup_configured(self):
        service = NutritionReconciliationService(None)

        food = await service.resolve("pizza")

        assert food.is_estimate is True


class TestResolveById:
    """Tests for NutritionReconciliationService.resolve_by_id."""

    @pytest.mark.asyncio
    async def test_found(self, lookup, reconciliation):
        candidate = usda_candidate("2001", "Bagel", 250, 10, 48, 1.5)
        lookup.by_id["2001"] = candidate.model_copy(
            update={"serving_size": 98.0, "serving_size_unit": "g"}
        )

        result = await reconciliation.resolve_by_id("2001")

        assert isinstance(result, Success)
        assert result.data.name == "Bagel"
        assert result.data.portion == "98g"
        assert result.data.provider_food_id == "2001"

    @pytest.mark.asyncio
    async def test_not_found(self, reconciliation):
        result = await reconciliation.resolve_by_id("missing")

        assert isinstance(result, Failure)
        assert result.error_code == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_no_nutrition(self, lookup, reconciliation):
        lookup.by_id["3001"] = usda_candidate("3001", "Tea")

        result = await reconciliation.resolve_by_id("3001")

        assert isinstance(result, Failure)
        assert result.error_code == "NO_NUTRITION"

    @pytest.mark.asyncio
    async def test_provider_error_code_kept(self, lookup, reconciliation):
        lookup.error = NutritionLookupError("down", error_code="CONNECTION_ERROR")

        result = await reconciliation.resolve_by_id("1")

        assert isinstance(result, Failure)
        assert result.error_code == "CONNECTION_ERROR"

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        result = await NutritionReconciliationService(None).resolve_by_id("1")

        assert isinstance(result, Failure)
        assert result.error_code == "LOOKUP_UNAVAILABLE"
