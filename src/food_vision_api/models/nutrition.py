"""Pydantic models for nutrition records and reconciled food results."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

# Sanity bounds for a single record
MAX_CALORIES = 10000.0
MAX_MACRO_GRAMS = 1000.0


class NutritionSource(str, Enum):
    """Where the nutrition values of a food result came from."""

    DATABASE = "database"  # Matched nutrition database record
    REMOTE_ESTIMATE = "remote_estimate"  # Remote analyzer's own estimate
    GENERIC_ESTIMATE = "generic_estimate"  # Fixed fallback values


class NutritionRecord(BaseModel):
    """Calories and macronutrients for one portion."""

    model_config = ConfigDict(frozen=True)

    calories: float = Field(0.0, ge=0, le=MAX_CALORIES, description="Energy in kcal")
    protein: float = Field(0.0, ge=0, le=MAX_MACRO_GRAMS, description="Protein in grams")
    carbs: float = Field(0.0, ge=0, le=MAX_MACRO_GRAMS, description="Carbohydrates in grams")
    fat: float = Field(0.0, ge=0, le=MAX_MACRO_GRAMS, description="Total fat in grams")

    @property
    def is_valid(self) -> bool:
        """A record is usable only if at least one value is present."""
        return any(v > 0 for v in (self.calories, self.protein, self.carbs, self.fat))

    def format_summary(self) -> str:
        """Format as a compact one-liner, e.g. "200cal | P:10g | C:25g | F:8g"."""
        return (
            f"{int(self.calories)}cal | P:{int(self.protein)}g | "
            f"C:{int(self.carbs)}g | F:{int(self.fat)}g"
        )


def is_reasonable_nutrition(
    calories: float, protein: float, carbs: float, fat: float
) -> bool:
    """Check raw values against the record bounds before building a record."""
    if not 0 <= calories <= MAX_CALORIES:
        return False
    return all(0 <= v <= MAX_MACRO_GRAMS for v in (protein, carbs, fat))


# Rough per-serving values used when no database record can be matched
GENERIC_ESTIMATE = NutritionRecord(calories=200.0, protein=10.0, carbs=25.0, fat=8.0)


class FoodResult(BaseModel):
    """A food name reconciled with nutrition data."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Food name")
    portion: str = Field("100g", description="Portion the nutrition refers to")
    nutrition: NutritionRecord
    image_ref: str | None = Field(None, description="Opaque reference to the source image")
    nutrition_source: NutritionSource = NutritionSource.DATABASE
    provider_food_id: str | None = Field(None, description="Nutrition database record ID")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_estimate(self) -> bool:
        """True when the nutrition is an estimate rather than measured data."""
        return self.nutrition_source != NutritionSource.DATABASE
