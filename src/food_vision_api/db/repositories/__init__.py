"""Repository classes for database access."""

from .fallback_logs import FallbackLogRepository, FallbackLogStore
from .in_memory import InMemoryFallbackLogRepository

__all__ = ["FallbackLogRepository", "FallbackLogStore", "InMemoryFallbackLogRepository"]
