"""
Remote analyzer - escalation target for food identification.

Provides an abstraction layer over remote vision models with Ollama/LLaVA as
the initial provider.
"""

from .base import RemoteAnalysis, RemoteAnalyzer, RemoteAnalyzerError, RemoteFoodItem
from .factory import create_remote_analyzer
from .ollama_provider import OllamaRemoteAnalyzer

__all__ = [
    "RemoteAnalysis",
    "RemoteAnalyzer",
    "RemoteAnalyzerError",
    "RemoteFoodItem",
    "create_remote_analyzer",
    "OllamaRemoteAnalyzer",
]
