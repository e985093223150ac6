"""
Factory for creating nutrition lookup service instances.

Reads configuration from settings and returns the appropriate provider.
"""

import logging

from food_vision_api.core.config import Settings

from .base import NutritionLookupService
from .usda_provider import USDANutritionLookup

logger = logging.getLogger(__name__)


def get_nutrition_lookup_service(settings: Settings) -> NutritionLookupService | None:
    """
    Get the configured nutrition lookup service.

    Configuration is read from settings:
    - usda_api_key: USDA FoodData Central API key
    - usda_api_base_url: API base URL
    - usda_enabled: Whether USDA lookup is enabled
    - lookup_timeout: Request timeout in seconds

    Returns:
        Configured NutritionLookupService instance, or None if not configured
    """
    if not settings.is_usda_configured:
        logger.warning("USDA nutrition lookup not configured (missing API key or disabled)")
        return None

    logger.info("Initializing USDA nutrition lookup service")

    return USDANutritionLookup(
        api_key=settings.usda_api_key,
        base_url=settings.usda_api_base_url,
        timeout=settings.lookup_timeout,
    )
