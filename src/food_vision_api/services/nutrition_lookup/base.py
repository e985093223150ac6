"""
Base classes and models for nutrition lookup service.

Defines the abstract interface that all providers must implement. Providers
return candidate records as-is; picking a usable candidate and extracting
calories and macros is the reconciliation service's job.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field


class NutrientValue(BaseModel):
    """
    One nutrient on a candidate record.

    Some records tag a nutrient with a stable numeric id, others only with a
    free-text name; both forms are kept.
    """

    nutrient_id: int | None = Field(None, description="Stable numeric nutrient id, if tagged")
    name: str = Field("", description="Free-text nutrient name")
    value: float = Field(0.0, description="Amount per serving")
    unit: str = Field("", description='Unit, e.g. "g", "kcal", "kJ"')


class NutritionCandidate(BaseModel):
    """A candidate food record returned by a provider."""

    food_id: str = Field(..., description="Provider-specific identifier (e.g. USDA FDC ID)")
    description: str = Field(..., description="Display name from the database")
    data_type: str | None = Field(
        None, description="USDA data type: 'Branded', 'Foundation', 'SR Legacy', etc."
    )
    brand: str | None = None
    nutrients: list[NutrientValue] = Field(default_factory=list)
    serving_size: float | None = None
    serving_size_unit: str | None = None


class NutritionLookupError(Exception):
    """Error during nutrition lookup."""

    def __init__(
        self,
        message: str,
        error_code: str = "LOOKUP_ERROR",
        provider: str = "unknown",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.provider = provider
        self.details = details or {}


class NutritionLookupService(ABC):
    """
    Abstract base class for nutrition lookup services.

    All providers (USDA, Nutritionix, etc.) must implement this interface.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of this provider."""
        ...

    @abstractmethod
    async def search_food(
        self,
        query: str,
        *,
        max_results: int = 5,
    ) -> list[NutritionCandidate]:
        """
        Search for a food by free-text name.

        Args:
            query: Food name/description to search for
            max_results: Maximum number of candidates to return

        Returns:
            Candidates in the provider's relevance order (possibly empty)

        Raises:
            NutritionLookupError: If the provider is unreachable or errors
        """
        ...

    @abstractmethod
    async def get_food_by_id(
        self,
        food_id: str,
    ) -> NutritionCandidate | None:
        """
        Get a specific food by database ID.

        Returns:
            The candidate, or None if the provider has no such record

        Raises:
            NutritionLookupError: If lookup fails
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the provider is available and healthy.

        Returns:
            True if the provider is ready to accept requests
        """
        ...

    async def close(self) -> None:
        """Release provider resources."""
        return None
