"""
ONNX Runtime food classifier.

Runs a single-image classification model on CPU. The model's output is a
per-class score vector aligned 1:1 with an ordered label list.
"""

import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Sequence

import numpy as np
import onnxruntime as ort

from food_vision_api.models.detection import MAX_PREDICTIONS, MIN_CONFIDENCE_FLOOR, Prediction

from .base import EngineInitError, EngineNotReady, InferenceError, LocalInferenceEngine
from .preprocess import Layout, Normalization, load_rgb_image, to_input_tensor

logger = logging.getLogger(__name__)

DEFAULT_INPUT_SIZE = 224


def load_labels(labels_path: Path) -> list[str]:
    """
    Load the ordered label list.

    Accepts a newline-delimited text file (blank lines skipped), a JSON list,
    or a JSON object keyed by class index ({"0": "apple_pie", ...}).
    """
    text = labels_path.read_text(encoding="utf-8")

    if labels_path.suffix.lower() == ".json":
        data = json.loads(text)
        if isinstance(data, dict):
            return [str(data[k]).strip() for k in sorted(data, key=lambda k: int(k))]
        return [str(label).strip() for label in data]

    return [line.strip() for line in text.splitlines() if line.strip()]


def rank_predictions(
    scores: Sequence[float] | np.ndarray,
    labels: Sequence[str],
    min_confidence: float = MIN_CONFIDENCE_FLOOR,
    max_predictions: int = MAX_PREDICTIONS,
) -> list[Prediction]:
    """Filter scores below the floor, sort descending and keep the top ones."""
    ranked = [
        (index, float(score))
        for index, score in enumerate(scores)
        if float(score) >= min_confidence
    ]
    # Stable sort keeps label order for equal scores
    ranked.sort(key=lambda item: item[1], reverse=True)

    return [
        Prediction(
            label=labels[index] if index < len(labels) else f"unknown_{index}",
            confidence=min(1.0, max(0.0, score)),
        )
        for index, score in ranked[:max_predictions]
    ]


def _softmax(logits: np.ndarray) -> np.ndarray:
    shifted = logits - np.max(logits)
    exp = np.exp(shifted)
    return exp / np.sum(exp)


class OnnxFoodClassifier(LocalInferenceEngine):
    """
    Food classifier backed by an ONNX Runtime session.

    The session is not safe for concurrent use: ``classify`` and ``close``
    share a lock so the session is never released mid-inference.
    """

    def __init__(
        self,
        model_path: str | Path,
        labels_path: str | Path,
        *,
        min_confidence: float = MIN_CONFIDENCE_FLOOR,
        max_predictions: int = MAX_PREDICTIONS,
        normalization: Normalization = "minus_one_to_one",
        apply_softmax: bool = False,
    ) -> None:
        self.model_path = Path(model_path)
        self.labels_path = Path(labels_path)
        self.min_confidence = min_confidence
        self.max_predictions = min(max_predictions, MAX_PREDICTIONS)
        self.normalization = normalization
        self.apply_softmax = apply_softmax

        self._session: Any | None = None
        self._labels: list[str] = []
        self._input_name: str | None = None
        self._output_name: str | None = None
        self._input_width = DEFAULT_INPUT_SIZE
        self._input_height = DEFAULT_INPUT_SIZE
        self._layout: Layout = "nhwc"
        self._lock = threading.Lock()

    @property
    def is_ready(self) -> bool:
        return self._session is not None

    @property
    def labels(self) -> list[str]:
        return list(self._labels)

    @property
    def input_size(self) -> tuple[int, int]:
        """Model input (width, height)."""
        return self._input_width, self._input_height

    def initialize(self) -> None:
        """Load the label set and create the inference session."""
        with self._lock:
            if self._session is not None:
                logger.info("Classifier already initialized")
                return

            if not self.model_path.exists():
                raise EngineInitError(
                    f"Classifier model not found at {self.model_path}",
                    details={"model_path": str(self.model_path)},
                )
            if not self.labels_path.exists():
                raise EngineInitError(
                    f"Classifier labels not found at {self.labels_path}",
                    details={"labels_path": str(self.labels_path)},
                )

            try:
                labels = load_labels(self.labels_path)
            except (OSError, ValueError) as e:
                raise EngineInitError(f"Failed to read classifier labels: {e}") from e
            if not labels:
                raise EngineInitError(f"Label file {self.labels_path} is empty")

            logger.info(f"Loading classifier from {self.model_path} ({len(labels)} labels)")
            start_time = time.time()

            try:
                session = ort.InferenceSession(
                    str(self.model_path), providers=["CPUExecutionProvider"]
                )
                model_input = session.get_inputs()[0]
                model_output = session.get_outputs()[0]
            except Exception as e:
                raise EngineInitError(f"Failed to load classifier model: {e}") from e

            self._configure_geometry(model_input.shape)
            self._check_output_size(model_output.shape, len(labels))

            self._session = session
            self._labels = labels
            self._input_name = model_input.name
            self._output_name = model_output.name

            logger.info(
                f"Classifier loaded in {time.time() - start_time:.2f}s "
                f"(input {self._input_width}x{self._input_height}, {self._layout})"
            )

    def _configure_geometry(self, shape: Sequence[Any]) -> None:
        """Read width/height and channel layout from the declared input shape."""
        if len(shape) != 4:
            raise EngineInitError(f"Unsupported classifier input shape: {list(shape)}")

        def dim(value: Any) -> int:
            return value if isinstance(value, int) and value > 0 else DEFAULT_INPUT_SIZE

        # Typical shapes: [1, 224, 224, 3] (TF export) or [1, 3, 224, 224] (PyTorch export)
        if shape[1] == 3 and shape[3] != 3:
            self._layout = "nchw"
            self._input_height, self._input_width = dim(shape[2]), dim(shape[3])
        else:
            self._layout = "nhwc"
            self._input_height, self._input_width = dim(shape[1]), dim(shape[2])

    @staticmethod
    def _check_output_size(shape: Sequence[Any], label_count: int) -> None:
        classes = shape[-1] if shape else None
        if isinstance(classes, int) and classes != label_count:
            raise EngineInitError(
                f"Model outputs {classes} classes but {label_count} labels were loaded",
                details={"model_classes": classes, "labels": label_count},
            )

    def classify(self, image_data: bytes) -> list[Prediction]:
        with self._lock:
            if self._session is None:
                raise EngineNotReady("Classifier not initialized. Call initialize() first.")

            try:
                image = load_rgb_image(image_data)
            except ValueError as e:
                raise InferenceError(str(e)) from e

            tensor = to_input_tensor(
                image,
                self._input_width,
                self._input_height,
                normalization=self.normalization,
                layout=self._layout,
            )

            try:
                outputs = self._session.run([self._output_name], {self._input_name: tensor})
            except Exception as e:
                raise InferenceError(f"Classifier inference failed: {e}") from e

            scores = np.asarray(outputs[0], dtype=np.float32).reshape(-1)
            if scores.size != len(self._labels):
                raise InferenceError(
                    f"Classifier returned {scores.size} scores for {len(self._labels)} labels"
                )
            if self.apply_softmax:
                scores = _softmax(scores)

            predictions = rank_predictions(
                scores, self._labels, self.min_confidence, self.max_predictions
            )

        if predictions:
            logger.debug(
                f"Classification complete. Top prediction: {predictions[0].label} "
                f"({predictions[0].confidence:.2f})"
            )
        else:
            logger.debug("Classification complete. No prediction cleared the floor")
        return predictions

    def close(self) -> None:
        with self._lock:
            self._session = None
            self._input_name = None
            self._output_name = None
        logger.info("Classifier resources released")
