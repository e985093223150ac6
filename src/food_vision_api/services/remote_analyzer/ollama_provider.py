"""
Ollama/LLaVA provider for remote food analysis.

Uses an Ollama instance with a LLaVA vision model to identify the food in an
image when the on-device classifier's result is rejected.
"""

import base64
import json
import logging
import time
from typing import Any

import httpx

from food_vision_api.models.detection import MAX_PREDICTIONS, Prediction
from food_vision_api.models.nutrition import NutritionRecord, is_reasonable_nutrition

from .base import RemoteAnalysis, RemoteAnalyzer, RemoteAnalyzerError, RemoteFoodItem

logger = logging.getLogger(__name__)


FOOD_ANALYSIS_PROMPT = """You are a nutrition expert analyzing a food image. Identify the main food in this image.

CRITICAL: Only identify food that is ACTUALLY VISIBLE in this image. Do not copy examples.

Provide:
1. The most likely food (primaryFood)
2. Up to 4 alternatives if uncertain
3. For each: name, estimated portion, calories, protein, carbs, fat for that portion
4. A confidence level (0.0 to 1.0) for each

Respond ONLY with valid JSON in this format:
{
  "primaryFood": {
    "name": "<food name>",
    "confidence": <0.0-1.0>,
    "portion": "<e.g. 1 slice (120g)>",
    "calories": <number>,
    "protein": <number>,
    "carbs": <number>,
    "fat": <number>
  },
  "alternatives": [
    {"name": "<food name>", "confidence": <0.0-1.0>, "portion": "<portion>",
     "calories": <number>, "protein": <number>, "carbs": <number>, "fat": <number>}
  ]
}

RULES:
- Be specific with food names (e.g. "Margherita pizza" not "food")
- Use realistic nutrition for the estimated portion
- If you cannot see any food, return {"primaryFood": null, "alternatives": []}

Do not include any text outside the JSON."""


class OllamaRemoteAnalyzer(RemoteAnalyzer):
    """
    Remote food analysis using Ollama with LLaVA vision model.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "llava:7b",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize Ollama provider.

        Args:
            base_url: Ollama API base URL
            model: Vision model to use (default: llava:7b)
            timeout: Request timeout in seconds
            client: Optional pre-built HTTP client
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def provider_name(self) -> str:
        return f"ollama/{self.model}"

    async def analyze(
        self,
        image_data: bytes,
        *,
        max_predictions: int = MAX_PREDICTIONS,
    ) -> RemoteAnalysis:
        """
        Identify the food in an image using LLaVA.
        """
        start_time = time.time()

        try:
            image_b64 = base64.b64encode(image_data).decode("utf-8")

            request_body = {
                "model": self.model,
                "prompt": FOOD_ANALYSIS_PROMPT,
                "images": [image_b64],
                "stream": False,
                "format": "json",
                "options": {
                    "temperature": 0.2,
                    "num_predict": 800,
                    "top_p": 0.9,
                },
            }

            logger.info(f"Sending food analysis request to Ollama ({self.model})")

            response = await self._client.post(
                f"{self.base_url}/api/generate",
                json=request_body,
            )

            if response.status_code != 200:
                raise RemoteAnalyzerError(
                    message=f"Ollama API error: {response.status_code}",
                    error_code="PROVIDER_ERROR",
                    provider=self.provider_name,
                    details={"status_code": response.status_code, "body": response.text},
                )

            raw_response = response.json().get("response", "")
            logger.debug(f"Raw Ollama response: {raw_response[:500]}...")

            predictions, items = self._parse_response(raw_response)
            if not predictions:
                raise RemoteAnalyzerError(
                    message="Remote analyzer did not identify any food",
                    error_code="NO_FOOD_IDENTIFIED",
                    provider=self.provider_name,
                )

            predictions = predictions[:max_predictions]
            processing_time = int((time.time() - start_time) * 1000)

            logger.info(
                f"Remote analysis identified '{predictions[0].label}' "
                f"({predictions[0].confidence:.2f}) in {processing_time}ms"
            )

            return RemoteAnalysis(
                predictions=predictions,
                items=items,
                raw_response=raw_response,
                provider=self.provider_name,
                processing_time_ms=processing_time,
            )

        except httpx.TimeoutException as e:
            raise RemoteAnalyzerError(
                message="Ollama request timed out",
                error_code="TIMEOUT",
                provider=self.provider_name,
            ) from e
        except httpx.RequestError as e:
            raise RemoteAnalyzerError(
                message=f"Failed to connect to Ollama: {e}",
                error_code="CONNECTION_ERROR",
                provider=self.provider_name,
            ) from e
        except RemoteAnalyzerError:
            raise
        except Exception as e:
            logger.exception("Unexpected error in remote analysis")
            raise RemoteAnalyzerError(
                message=f"Unexpected error: {e}",
                error_code="UNEXPECTED_ERROR",
                provider=self.provider_name,
            ) from e

    def _parse_response(
        self, raw_response: str
    ) -> tuple[list[Prediction], list[RemoteFoodItem]]:
        """Parse LLaVA response into ranked predictions plus per-item estimates."""
        json_str = self._extract_json(raw_response)

        if not json_str:
            logger.warning("Could not extract JSON from response")
            return [], []

        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse JSON: {e}")
            return [], []

        raw_items: list[dict[str, Any]] = []
        if isinstance(data.get("primaryFood"), dict):
            raw_items.append(data["primaryFood"])
        raw_items.extend(a for a in data.get("alternatives") or [] if isinstance(a, dict))

        predictions: list[Prediction] = []
        items: list[RemoteFoodItem] = []
        for item in raw_items:
            name = str(item.get("name") or "").strip()
            if not name:
                continue
            try:
                confidence = min(1.0, max(0.0, float(item.get("confidence", 0.5))))
            except (TypeError, ValueError):
                confidence = 0.5

            # Remote labels are already human-readable
            predictions.append(Prediction(label=name, confidence=confidence, display_name=name))
            items.append(
                RemoteFoodItem(
                    label=name,
                    portion=item.get("portion") or None,
                    nutrition=self._parse_nutrition(item),
                )
            )

        return predictions, items

    @staticmethod
    def _parse_nutrition(item: dict[str, Any]) -> NutritionRecord | None:
        try:
            values = [float(item.get(key) or 0) for key in ("calories", "protein", "carbs", "fat")]
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to parse nutrition estimate: {e}")
            return None

        if not is_reasonable_nutrition(*values):
            return None
        record = NutritionRecord(calories=values[0], protein=values[1], carbs=values[2], fat=values[3])
        return record if record.is_valid else None

    def _extract_json(self, text: str) -> str | None:
        """Extract JSON object from text response."""
        text = text.strip()

        start = text.find("{")
        if start == -1:
            return None

        # Find the matching end brace
        brace_count = 0
        for i in range(start, len(text)):
            if text[i] == "{":
                brace_count += 1
            elif text[i] == "}":
                brace_count -= 1
                if brace_count == 0:
                    return text[start : i + 1]

        return None

    async def health_check(self) -> bool:
        """Check if Ollama is available and has the required model."""
        try:
            response = await self._client.get(f"{self.base_url}/api/tags")
            if response.status_code != 200:
                return False

            tags = response.json()
            models = [m.get("name", "") for m in tags.get("models", [])]

            # Exact match or family match (e.g. "llava:7b" vs "llava:7b-v1.6")
            model_available = any(
                self.model in m or m.startswith(self.model.split(":")[0])
                for m in models
            )

            if not model_available:
                logger.warning(f"Model {self.model} not found. Available: {models}")
                return False

            return True

        except Exception as e:
            logger.error(f"Ollama health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
