"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from food_vision_api.api.routes import food_scan, telemetry
from food_vision_api.core.config import Settings, TelemetryBackend, get_settings
from food_vision_api.core.exceptions import APIError
from food_vision_api.core.result import Failure
from food_vision_api.core.scheduler import start_scheduler, stop_scheduler
from food_vision_api.db.mongo import MongoDB
from food_vision_api.db.repositories import FallbackLogStore, InMemoryFallbackLogRepository
from food_vision_api.db.unit_of_work import UnitOfWork
from food_vision_api.models.food_scan import HealthResponse
from food_vision_api.services.local_inference import InferenceContext, OnnxFoodClassifier
from food_vision_api.services.nutrition_lookup import get_nutrition_lookup_service
from food_vision_api.services.orchestrator import FallbackDecisionOrchestrator
from food_vision_api.services.pipeline import FoodAnalysisPipeline
from food_vision_api.services.reconciliation import NutritionReconciliationService
from food_vision_api.services.remote_analyzer import create_remote_analyzer
from food_vision_api.services.telemetry import GapTelemetryLogger

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def build_fallback_log_store(settings: Settings) -> FallbackLogStore:
    """Pick the telemetry store for the configured backend."""
    if settings.telemetry_backend == TelemetryBackend.MEMORY:
        logger.info("Using in-memory telemetry store")
        return InMemoryFallbackLogRepository()

    logger.info(f"Connecting to MongoDB database '{settings.db_name}'")
    MongoDB.connect(settings.mongo_uri, settings.db_name)
    repository = UnitOfWork(MongoDB.get_database()).fallback_logs

    if not await MongoDB.ping():
        logger.warning("MongoDB unreachable at startup; telemetry writes will fail until it is back")
        return repository

    try:
        await repository.ensure_indexes()
    except Exception as e:
        logger.warning(f"Could not create telemetry indexes: {e}")
    return repository


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Builds the long-lived services once and releases them on shutdown.
    """
    settings = get_settings()
    configure_logging(settings)
    logger.info(f"Starting {settings.app_name} v{settings.api_version}")

    engine = OnnxFoodClassifier(
        settings.classifier_model_path,
        settings.classifier_labels_path,
        min_confidence=settings.min_confidence_floor,
        max_predictions=settings.max_predictions,
        normalization=settings.classifier_normalization,
        apply_softmax=settings.classifier_apply_softmax,
    )
    context = InferenceContext(engine)
    init_result = await context.initialize()
    if isinstance(init_result, Failure):
        # Keep serving: every scan escalates until the model is fixed
        logger.error(f"Local classifier unavailable, all scans will escalate: {init_result.message}")

    store = await build_fallback_log_store(settings)
    telemetry_logger = GapTelemetryLogger(store, retention_days=settings.telemetry_retention_days)

    remote = create_remote_analyzer(settings)
    lookup = get_nutrition_lookup_service(settings)

    orchestrator = FallbackDecisionOrchestrator(
        context,
        remote,
        telemetry_logger,
        high_threshold=settings.high_confidence_threshold,
        medium_threshold=settings.medium_confidence_threshold,
        max_predictions=settings.max_predictions,
        remote_timeout=settings.remote_analyzer_timeout,
    )
    reconciliation = NutritionReconciliationService(
        lookup,
        candidate_limit=settings.lookup_candidate_limit,
        timeout=settings.lookup_timeout,
    )

    app.state.inference_context = context
    app.state.remote_analyzer = remote
    app.state.nutrition_lookup = lookup
    app.state.telemetry = telemetry_logger
    app.state.reconciliation = reconciliation
    app.state.pipeline = FoodAnalysisPipeline(orchestrator, reconciliation)

    scheduler = start_scheduler(settings, telemetry_logger)

    yield

    logger.info("Shutting down...")
    stop_scheduler(scheduler)
    await remote.close()
    if lookup is not None:
        await lookup.close()
    await context.close()
    MongoDB.close()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.api_version,
        description="Hybrid on-device/remote food recognition with nutrition lookup",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        """Handle custom API errors."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.message,
                "details": exc.details,
            },
        )

    # Health check endpoint
    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request) -> HealthResponse:
        """Health check endpoint."""
        state = request.app.state
        context = getattr(state, "inference_context", None)
        remote = getattr(state, "remote_analyzer", None)
        lookup = getattr(state, "nutrition_lookup", None)
        telemetry_logger = getattr(state, "telemetry", None)

        engine_ready = context is not None and context.is_ready
        remote_healthy = remote is not None and await remote.health_check()
        lookup_healthy = await lookup.health_check() if lookup is not None else None

        return HealthResponse(
            status="healthy" if engine_ready and remote_healthy else "degraded",
            local_engine_ready=engine_ready,
            remote_analyzer_healthy=remote_healthy,
            nutrition_lookup_healthy=lookup_healthy,
            telemetry_backend=settings.telemetry_backend.value,
            telemetry_failures=telemetry_logger.failure_count if telemetry_logger else 0,
        )

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": settings.app_name,
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    # Include routers
    app.include_router(food_scan.router, prefix="/food", tags=["Food Scan"])
    app.include_router(telemetry.router, prefix="/telemetry", tags=["Telemetry"])

    return app


# Create app instance
app = create_app()
