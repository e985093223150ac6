"""Unit of Work pattern for managing repository access."""

from motor.motor_asyncio import AsyncIOMotorDatabase

from .repositories.fallback_logs import FallbackLogRepository

FALLBACK_LOGS_COLLECTION = "fallback_logs"


class UnitOfWork:
    """
    Groups repository access and provides a single injection point for services.

    Usage:
        uow = UnitOfWork(db)
        await uow.fallback_logs.insert(entry)
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        """
        Initialize Unit of Work with database instance.

        Args:
            db: Motor database instance
        """
        self._db = db
        self._fallback_logs: FallbackLogRepository | None = None

    @property
    def fallback_logs(self) -> FallbackLogRepository:
        """Get the fallback log repository (lazy loaded)."""
        if self._fallback_logs is None:
            self._fallback_logs = FallbackLogRepository(self._db[FALLBACK_LOGS_COLLECTION])
        return self._fallback_logs
