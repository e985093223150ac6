"""
Nutrition reconciliation service.

Merges a detected food name with a nutrition database record. Candidate
records are taken in provider order and the first one with usable nutrient
values wins; when nothing usable comes back (or the lookup itself fails)
the result carries a generic estimate flagged as such.
"""

import asyncio
import logging
from typing import Sequence

from food_vision_api.core.result import Failure, Result, Success
from food_vision_api.models.nutrition import (
    GENERIC_ESTIMATE,
    FoodResult,
    NutritionRecord,
    NutritionSource,
    is_reasonable_nutrition,
)
from food_vision_api.services.nutrition_lookup import (
    NutrientValue,
    NutritionCandidate,
    NutritionLookupError,
    NutritionLookupService,
)

logger = logging.getLogger(__name__)


# USDA nutrient IDs (stable across the FoodData Central database)
ENERGY_KCAL_ID = 1008
PROTEIN_ID = 1003
CARBS_ID = 1005
FAT_ID = 1004

# Name aliases, most specific first
ENERGY_NAMES = ("energy", "calories", "kcal")
PROTEIN_NAMES = ("protein",)
CARBS_NAMES = ("carbohydrate", "carbohydrates", "carbs")
FAT_NAMES = ("total lipid (fat)", "total fat", "fat")

DATABASE_PORTION = "100g"
ESTIMATE_PORTION = "1 serving"


def find_nutrient_value(
    nutrients: Sequence[NutrientValue],
    nutrient_id: int,
    names: Sequence[str],
    *,
    skip_units: Sequence[str] = (),
) -> float | None:
    """
    Find a nutrient by its numeric id, falling back to a name match.

    The name fallback is a case-insensitive substring match, trying each
    alias in order against every nutrient before moving to the next alias.
    """
    for nutrient in nutrients:
        if nutrient.nutrient_id == nutrient_id:
            return nutrient.value

    skipped = {unit.lower() for unit in skip_units}
    for alias in names:
        for nutrient in nutrients:
            if nutrient.unit.lower() in skipped:
                continue
            if alias in nutrient.name.lower():
                return nutrient.value

    return None


def extract_nutrition(candidate: NutritionCandidate) -> NutritionRecord | None:
    """
    Extract calories and macros from a candidate record.

    Returns None when no usable values are present or the values are out of
    bounds.
    """
    nutrients = candidate.nutrients
    if not nutrients:
        return None

    # Energy is also reported in kJ on some records
    calories = find_nutrient_value(nutrients, ENERGY_KCAL_ID, ENERGY_NAMES, skip_units=("kj",)) or 0.0
    protein = find_nutrient_value(nutrients, PROTEIN_ID, PROTEIN_NAMES) or 0.0
    carbs = find_nutrient_value(nutrients, CARBS_ID, CARBS_NAMES) or 0.0
    fat = find_nutrient_value(nutrients, FAT_ID, FAT_NAMES) or 0.0

    if not is_reasonable_nutrition(calories, protein, carbs, fat):
        logger.debug(f"Discarding out-of-range nutrition for '{candidate.description}'")
        return None

    record = NutritionRecord(calories=calories, protein=protein, carbs=carbs, fat=fat)
    return record if record.is_valid else None


def format_serving_size(serving_size: float | None, unit: str | None) -> str:
    """Format a serving size for display ("100g", "12.5g"); defaults to "100g"."""
    if serving_size is None or not unit:
        return DATABASE_PORTION
    if float(serving_size).is_integer():
        return f"{int(serving_size)}{unit}"
    return f"{serving_size}{unit}"


class NutritionReconciliationService:
    """Resolves food names to nutrition-bearing results."""

    def __init__(
        self,
        lookup: NutritionLookupService | None,
        *,
        candidate_limit: int = 5,
        timeout: float = 30.0,
    ):
        self.lookup = lookup
        self.candidate_limit = candidate_limit
        self.timeout = timeout

    async def resolve(self, food_name: str, *, image_ref: str | None = None) -> FoodResult:
        """
        Resolve a food name to a FoodResult.

        Never raises for lookup problems: a failed or empty lookup yields the
        generic estimate.
        """
        if self.lookup is None:
            logger.info(f"No nutrition lookup configured, estimating '{food_name}'")
            return self.estimate(food_name, image_ref=image_ref)

        try:
            candidates = await asyncio.wait_for(
                self.lookup.search_food(food_name, max_results=self.candidate_limit),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Nutrition lookup for '{food_name}' timed out after {self.timeout}s")
            return self.estimate(food_name, image_ref=image_ref)
        except NutritionLookupError as e:
            logger.warning(f"Nutrition lookup for '{food_name}' failed: [{e.error_code}] {e.message}")
            return self.estimate(food_name, image_ref=image_ref)

        for candidate in candidates:
            nutrition = extract_nutrition(candidate)
            if nutrition is None:
                continue
            logger.info(
                f"Matched '{food_name}' to '{candidate.description}' ({candidate.food_id}): "
                f"{nutrition.format_summary()}"
            )
            return FoodResult(
                name=candidate.description,
                portion=DATABASE_PORTION,
                nutrition=nutrition,
                image_ref=image_ref,
                nutrition_source=NutritionSource.DATABASE,
                provider_food_id=candidate.food_id,
            )

        logger.info(
            f"No usable nutrition among {len(candidates)} candidates for '{food_name}', estimating"
        )
        return self.estimate(food_name, image_ref=image_ref)

    def estimate(self, food_name: str, *, image_ref: str | None = None) -> FoodResult:
        """Build a FoodResult carrying the generic nutrition estimate."""
        return FoodResult(
            name=food_name,
            portion=ESTIMATE_PORTION,
            nutrition=GENERIC_ESTIMATE,
            image_ref=image_ref,
            nutrition_source=NutritionSource.GENERIC_ESTIMATE,
        )

    async def resolve_by_id(self, food_id: str) -> Result[FoodResult]:
        """Fetch one provider record by id and reconcile it."""
        if self.lookup is None:
            return Failure("Nutrition lookup is not configured", error_code="LOOKUP_UNAVAILABLE")

        try:
            candidate = await asyncio.wait_for(
                self.lookup.get_food_by_id(food_id), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            return Failure("Nutrition lookup timed out", exception=e, error_code="TIMEOUT")
        except NutritionLookupError as e:
            return Failure(e.message, exception=e, error_code=e.error_code)

        if candidate is None:
            return Failure(f"Food {food_id} not found", error_code="NOT_FOUND")

        nutrition = extract_nutrition(candidate)
        if nutrition is None:
            return Failure(f"No nutrition data available for {food_id}", error_code="NO_NUTRITION")

        return Success(
            FoodResult(
                name=candidate.description,
                portion=format_serving_size(candidate.serving_size, candidate.serving_size_unit),
                nutrition=nutrition,
                nutrition_source=NutritionSource.DATABASE,
                provider_food_id=candidate.food_id,
            )
        )
