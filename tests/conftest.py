"""Pytest configuration and fixtures."""

import io
from datetime import datetime, timedelta
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image

from food_vision_api.db.repositories import InMemoryFallbackLogRepository
from food_vision_api.models.detection import FallbackReason, Prediction
from food_vision_api.models.nutrition import NutritionRecord
from food_vision_api.models.telemetry import FallbackLogEntry
from food_vision_api.services.local_inference import (
    EngineNotReady,
    InferenceContext,
    LocalInferenceEngine,
)
from food_vision_api.services.nutrition_lookup import (
    NutrientValue,
    NutritionCandidate,
    NutritionLookupService,
)
from food_vision_api.services.orchestrator import FallbackDecisionOrchestrator
from food_vision_api.services.pipeline import FoodAnalysisPipeline
from food_vision_api.services.reconciliation import NutritionReconciliationService
from food_vision_api.services.remote_analyzer import (
    RemoteAnalysis,
    RemoteAnalyzer,
    RemoteFoodItem,
)
from food_vision_api.services.telemetry import GapTelemetryLogger
from food_vision_api.utils import utc_now


def make_jpeg(width: int = 32, height: int = 32, color=(200, 120, 40)) -> bytes:
    """Encode a solid-color test image."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="JPEG")
    return buffer.getvalue()


# =============================================================================
# Fakes
# =============================================================================


class FakeEngine(LocalInferenceEngine):
    """Engine returning canned predictions."""

    def __init__(self, predictions: list[tuple[str, float]] | None = None, *, ready: bool = True):
        self.predictions = predictions or []
        self.error: Exception | None = None
        self.calls = 0
        self.closed = False
        self._ready = ready

    @property
    def is_ready(self) -> bool:
        return self._ready and not self.closed

    def initialize(self) -> None:
        self._ready = True
        self.closed = False

    def classify(self, image_data: bytes) -> list[Prediction]:
        self.calls += 1
        if not self.is_ready:
            raise EngineNotReady("not initialized")
        if self.error is not None:
            raise self.error
        return [Prediction(label=label, confidence=conf) for label, conf in self.predictions]

    def close(self) -> None:
        self.closed = True


class FakeRemoteAnalyzer(RemoteAnalyzer):
    """Remote analyzer returning a canned food (or failing)."""

    def __init__(
        self,
        label: str = "Margherita pizza",
        confidence: float = 0.9,
        nutrition: NutritionRecord | None = None,
        portion: str | None = None,
    ):
        self.label = label
        self.confidence = confidence
        self.nutrition = nutrition
        self.portion = portion
        self.error: Exception | None = None
        self.calls = 0
        self.closed = False

    @property
    def provider_name(self) -> str:
        return "fake"

    async def analyze(self, image_data: bytes, *, max_predictions: int = 5) -> RemoteAnalysis:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return RemoteAnalysis(
            predictions=[Prediction(label=self.label, confidence=self.confidence)],
            items=[RemoteFoodItem(label=self.label, portion=self.portion, nutrition=self.nutrition)],
            provider=self.provider_name,
        )

    async def health_check(self) -> bool:
        return self.error is None

    async def close(self) -> None:
        self.closed = True


class FakeLookup(NutritionLookupService):
    """Nutrition lookup backed by a dict of query -> candidates."""

    def __init__(self, results: dict[str, list[NutritionCandidate]] | None = None):
        self.results = results or {}
        self.by_id: dict[str, NutritionCandidate] = {}
        self.error: Exception | None = None
        self.queries: list[str] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    async def search_food(self, query: str, *, max_results: int = 5) -> list[NutritionCandidate]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.results.get(query, [])[:max_results]

    async def get_food_by_id(self, food_id: str) -> NutritionCandidate | None:
        if self.error is not None:
            raise self.error
        return self.by_id.get(food_id)

    async def health_check(self) -> bool:
        return True


class FailingStore(InMemoryFallbackLogRepository):
    """Store whose inserts always fail."""

    async def insert(self, entry: FallbackLogEntry) -> FallbackLogEntry:
        raise ConnectionError("store unavailable")


def usda_candidate(
    food_id: str,
    description: str,
    calories: float = 0.0,
    protein: float = 0.0,
    carbs: float = 0.0,
    fat: float = 0.0,
) -> NutritionCandidate:
    """Candidate tagged with USDA nutrient ids."""
    return NutritionCandidate(
        food_id=food_id,
        description=description,
        nutrients=[
            NutrientValue(nutrient_id=1008, name="Energy", value=calories, unit="KCAL"),
            NutrientValue(nutrient_id=1003, name="Protein", value=protein, unit="G"),
            NutrientValue(nutrient_id=1005, name="Carbohydrate, by difference", value=carbs, unit="G"),
            NutrientValue(nutrient_id=1004, name="Total lipid (fat)", value=fat, unit="G"),
        ],
    )


def log_entry(
    food: str,
    *,
    reason: FallbackReason = FallbackReason.LOW_CONFIDENCE,
    age: timedelta = timedelta(0),
    exported: bool = False,
    now: datetime | None = None,
) -> FallbackLogEntry:
    return FallbackLogEntry(
        timestamp=(now or utc_now()) - age,
        food_name_from_remote=food,
        local_top_label="bread",
        local_top_confidence=0.2,
        reason=reason,
        exported=exported,
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def image_bytes() -> bytes:
    return make_jpeg()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine([("pizza", 0.85)])


@pytest.fixture
async def context(engine: FakeEngine) -> InferenceContext:
    ctx = InferenceContext(engine)
    await ctx.initialize()
    return ctx


@pytest.fixture
def remote() -> FakeRemoteAnalyzer:
    return FakeRemoteAnalyzer()


@pytest.fixture
def store() -> InMemoryFallbackLogRepository:
    return InMemoryFallbackLogRepository()


@pytest.fixture
def telemetry(store: InMemoryFallbackLogRepository) -> GapTelemetryLogger:
    return GapTelemetryLogger(store, retention_days=30)


@pytest.fixture
def lookup() -> FakeLookup:
    return FakeLookup(
        {
            "pizza": [usda_candidate("1001", "Pizza, cheese", 266, 11.4, 33.3, 9.7)],
            "Margherita pizza": [usda_candidate("1002", "Pizza, margherita", 250, 10.5, 30.1, 9.2)],
        }
    )


@pytest.fixture
def orchestrator(
    context: InferenceContext,
    remote: FakeRemoteAnalyzer,
    telemetry: GapTelemetryLogger,
) -> FallbackDecisionOrchestrator:
    return FallbackDecisionOrchestrator(context, remote, telemetry, remote_timeout=5.0)


@pytest.fixture
def reconciliation(lookup: FakeLookup) -> NutritionReconciliationService:
    return NutritionReconciliationService(lookup, candidate_limit=5, timeout=5.0)


@pytest.fixture
def pipeline(
    orchestrator: FallbackDecisionOrchestrator,
    reconciliation: NutritionReconciliationService,
) -> FoodAnalysisPipeline:
    return FoodAnalysisPipeline(orchestrator, reconciliation)


@pytest.fixture
async def client(
    context: InferenceContext,
    remote: FakeRemoteAnalyzer,
    lookup: FakeLookup,
    telemetry: GapTelemetryLogger,
    reconciliation: NutritionReconciliationService,
    pipeline: FoodAnalysisPipeline,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create async test client with services wired on app.state.

    Usage:
        async def test_endpoint(client: AsyncClient):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    from food_vision_api.main import create_app

    app = create_app()
    app.state.inference_context = context
    app.state.remote_analyzer = remote
    app.state.nutrition_lookup = lookup
    app.state.telemetry = telemetry
    app.state.reconciliation = reconciliation
    app.state.pipeline = pipeline

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
