"""
Local inference - on-device food classification.

The classifier runs in-process on CPU and is the first tier of detection.
"""

from .base import (
    EngineInitError,
    EngineNotReady,
    InferenceError,
    LocalInferenceEngine,
    LocalInferenceError,
)
from .context import InferenceContext
from .onnx_engine import OnnxFoodClassifier, load_labels, rank_predictions
from .preprocess import load_rgb_image, to_input_tensor

__all__ = [
    "EngineInitError",
    "EngineNotReady",
    "InferenceError",
    "LocalInferenceEngine",
    "LocalInferenceError",
    "InferenceContext",
    "OnnxFoodClassifier",
    "load_labels",
    "rank_predictions",
    "load_rgb_image",
    "to_input_tensor",
]
