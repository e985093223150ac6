"""
Process-wide owner of the local inference engine.

One ``InferenceContext`` is built at startup, stored on the application
state and handed to every component that classifies images. It enforces the
engine lifecycle: initialize once, serialize inference, close exactly once
and never while a classification is in flight.
"""

import asyncio
import logging

from food_vision_api.core.result import Failure, Result, Success
from food_vision_api.models.detection import Prediction

from .base import EngineNotReady, LocalInferenceEngine, LocalInferenceError

logger = logging.getLogger(__name__)


class InferenceContext:
    """Owns a single engine and queues classification calls against it."""

    def __init__(self, engine: LocalInferenceEngine):
        self._engine = engine
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def engine(self) -> LocalInferenceEngine:
        return self._engine

    @property
    def is_ready(self) -> bool:
        return not self._closed and self._engine.is_ready

    async def initialize(self) -> Result[None]:
        """
        Load the engine's model off the event loop.

        Returns a Failure instead of raising so startup can continue with
        the engine marked not ready (every request then escalates).
        """
        async with self._lock:
            try:
                await asyncio.to_thread(self._engine.initialize)
            except LocalInferenceError as e:
                logger.error(f"Local inference engine failed to initialize: {e.message}")
                return Failure(message=e.message, exception=e, error_code=e.error_code)
            self._closed = False
            logger.info("Local inference engine ready")
            return Success(None)

    async def classify(self, image_data: bytes) -> list[Prediction]:
        """
        Classify an image, one inference at a time.

        Raises:
            EngineNotReady: If the engine is not initialized or was closed
            InferenceError: If inference fails
        """
        async with self._lock:
            if not self.is_ready:
                raise EngineNotReady("Local inference engine is not ready")
            # A cancelled caller abandons the result, not the worker thread; the
            # engine's own lock keeps close() behind that thread.
            return await asyncio.to_thread(self._engine.classify, image_data)

    async def close(self) -> None:
        """Release the engine once; waits for any in-flight classification."""
        async with self._lock:
            if self._closed:
                return
            self._closed = True
            await asyncio.to_thread(self._engine.close)
