"""
USDA FoodData Central provider for nutrition lookup.

Uses the USDA FDC API to search for foods and retrieve nutrient lists.
API Documentation: https://fdc.nal.usda.gov/api-guide.html
"""

import logging
from typing import Any

import httpx

from .base import (
    NutrientValue,
    NutritionCandidate,
    NutritionLookupError,
    NutritionLookupService,
)

logger = logging.getLogger(__name__)


def _to_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


class USDANutritionLookup(NutritionLookupService):
    """
    Nutrition lookup using USDA FoodData Central API.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.nal.usda.gov/fdc/v1",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize USDA provider.

        Args:
            api_key: USDA FoodData Central API key
            base_url: API base URL
            timeout: Request timeout in seconds
            client: Optional pre-built HTTP client
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def provider_name(self) -> str:
        return "usda"

    async def search_food(
        self,
        query: str,
        *,
        max_results: int = 5,
    ) -> list[NutritionCandidate]:
        """
        Search USDA FoodData Central for a food.

        Prefers Foundation and SR Legacy data types for accuracy.
        """
        params = {
            "api_key": self.api_key,
            "query": query,
            "pageSize": max_results,
            "dataType": ["Foundation", "SR Legacy", "Survey (FNDDS)"],
        }

        logger.info(f"Searching USDA for: {query}")

        response = await self._get(f"{self.base_url}/foods/search", params)

        if response.status_code != 200:
            logger.error(f"USDA search failed: {response.status_code}")
            raise NutritionLookupError(
                message=f"USDA API error: {response.status_code}",
                error_code="API_ERROR",
                provider=self.provider_name,
                details={"status_code": response.status_code},
            )

        try:
            foods = response.json().get("foods") or []
            candidates = [self._candidate_from_search(food) for food in foods[:max_results]]
        except Exception as e:
            logger.exception("Unexpected USDA search response")
            raise NutritionLookupError(
                message=f"Unexpected error: {e}",
                error_code="UNEXPECTED_ERROR",
                provider=self.provider_name,
            ) from e

        if not candidates:
            logger.info(f"No USDA results for: {query}")
        return candidates

    async def get_food_by_id(
        self,
        food_id: str,
    ) -> NutritionCandidate | None:
        """
        Get detailed nutrition info for a specific USDA food.
        """
        logger.info(f"Fetching USDA food: {food_id}")

        response = await self._get(f"{self.base_url}/food/{food_id}", {"api_key": self.api_key})

        if response.status_code == 404:
            return None

        if response.status_code != 200:
            raise NutritionLookupError(
                message=f"USDA API error: {response.status_code}",
                error_code="API_ERROR",
                provider=self.provider_name,
                details={"status_code": response.status_code},
            )

        try:
            return self._candidate_from_detail(response.json())
        except Exception as e:
            logger.exception(f"Unexpected USDA response for food {food_id}")
            raise NutritionLookupError(
                message=f"Unexpected error: {e}",
                error_code="UNEXPECTED_ERROR",
                provider=self.provider_name,
            ) from e

    async def _get(self, url: str, params: dict[str, Any]) -> httpx.Response:
        try:
            return await self._client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise NutritionLookupError(
                message="USDA request timed out",
                error_code="TIMEOUT",
                provider=self.provider_name,
            ) from e
        except httpx.RequestError as e:
            # The request URL carries the API key; keep it out of logs and messages
            logger.error(f"USDA request failed: {type(e).__name__}")
            raise NutritionLookupError(
                message="Failed to connect to USDA API",
                error_code="CONNECTION_ERROR",
                provider=self.provider_name,
            ) from e

    def _candidate_from_search(self, food: dict[str, Any]) -> NutritionCandidate:
        """Build a candidate from the search result format."""
        nutrients = [
            NutrientValue(
                nutrient_id=n.get("nutrientId"),
                name=n.get("nutrientName") or "",
                value=_to_float(n.get("value")),
                unit=n.get("unitName") or "",
            )
            for n in food.get("foodNutrients") or []
        ]
        return NutritionCandidate(
            food_id=str(food.get("fdcId")),
            description=food.get("description") or "Unknown",
            data_type=food.get("dataType"),
            brand=food.get("brandOwner"),
            nutrients=nutrients,
            serving_size=food.get("servingSize"),
            serving_size_unit=food.get("servingSizeUnit"),
        )

    def _candidate_from_detail(self, food: dict[str, Any]) -> NutritionCandidate:
        """Build a candidate from the detail/full food format."""
        nutrients = []
        for n in food.get("foodNutrients") or []:
            # Detail records nest id/name/unit under "nutrient" and use "amount"
            nutrient_obj = n.get("nutrient") or {}
            nutrients.append(
                NutrientValue(
                    nutrient_id=nutrient_obj.get("id"),
                    name=nutrient_obj.get("name") or "",
                    value=_to_float(n.get("amount")),
                    unit=nutrient_obj.get("unitName") or "",
                )
            )
        return NutritionCandidate(
            food_id=str(food.get("fdcId")),
            description=food.get("description") or "Unknown",
            data_type=food.get("dataType"),
            brand=food.get("brandOwner"),
            nutrients=nutrients,
            serving_size=food.get("servingSize"),
            serving_size_unit=food.get("servingSizeUnit"),
        )

    async def health_check(self) -> bool:
        """Check if USDA API is available."""
        try:
            # Simple search to verify API key works
            response = await self._client.get(
                f"{self.base_url}/foods/search",
                params={"api_key": self.api_key, "query": "apple", "pageSize": 1},
            )
            return response.status_code == 200

        except Exception as e:
            logger.error(f"USDA health check failed: {type(e).__name__}")
            return False

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
