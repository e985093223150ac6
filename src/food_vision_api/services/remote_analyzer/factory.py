"""
Factory for creating remote analyzer instances.

Reads configuration from settings and returns the appropriate provider.
"""

import logging

from food_vision_api.core.config import RemoteAnalyzerProvider, Settings

from .base import RemoteAnalyzer, RemoteAnalyzerError
from .ollama_provider import OllamaRemoteAnalyzer

logger = logging.getLogger(__name__)


# Supported providers
PROVIDERS: dict[RemoteAnalyzerProvider, type[RemoteAnalyzer]] = {
    RemoteAnalyzerProvider.OLLAMA: OllamaRemoteAnalyzer,
}


def create_remote_analyzer(settings: Settings) -> RemoteAnalyzer:
    """
    Create the configured remote analyzer.

    Raises:
        RemoteAnalyzerError: If the provider is not supported
    """
    provider = settings.remote_analyzer_provider

    logger.info(f"Initializing remote analyzer provider: {provider.value}")

    if provider not in PROVIDERS:
        raise RemoteAnalyzerError(
            message=f"Unknown remote analyzer provider: {provider}",
            error_code="INVALID_PROVIDER",
            provider=str(provider),
            details={"supported_providers": [p.value for p in PROVIDERS]},
        )

    if provider == RemoteAnalyzerProvider.OLLAMA:
        logger.info(
            f"Configuring Ollama provider: {settings.ollama_base_url}, model={settings.ollama_model}"
        )
        return OllamaRemoteAnalyzer(
            base_url=settings.ollama_base_url,
            model=settings.ollama_model,
            timeout=settings.remote_analyzer_timeout,
        )

    raise RemoteAnalyzerError(
        message=f"Provider {provider.value} is not yet implemented",
        error_code="NOT_IMPLEMENTED",
        provider=provider.value,
    )
