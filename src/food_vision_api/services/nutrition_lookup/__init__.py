"""
Nutrition Lookup Service - Facade pattern for nutrition database APIs.

Provides an abstraction layer for nutrition lookup with USDA FoodData Central
as the initial provider.
"""

from .base import (
    NutrientValue,
    NutritionCandidate,
    NutritionLookupError,
    NutritionLookupService,
)
from .factory import get_nutrition_lookup_service
from .usda_provider import USDANutritionLookup

__all__ = [
    "NutrientValue",
    "NutritionCandidate",
    "NutritionLookupError",
    "NutritionLookupService",
    "get_nutrition_lookup_service",
    "USDANutritionLookup",
]
