"""MongoDB connection management using Motor async driver."""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

# Telemetry writes give up after this long when the server is down
SERVER_SELECTION_TIMEOUT_MS = 5000


class MongoDB:
    """
    MongoDB connection manager.

    Holds the single connection pool backing the telemetry store for the
    application lifecycle.
    """

    client: AsyncIOMotorClient | None = None
    _db_name: str = "food_vision_db"

    @classmethod
    def connect(cls, uri: str, db_name: str = "food_vision_db") -> None:
        """
        Initialize MongoDB connection.

        Args:
            uri: MongoDB connection URI
            db_name: Database name to use
        """
        # Stored timestamps come back as aware UTC datetimes
        cls.client = AsyncIOMotorClient(
            uri, tz_aware=True, serverSelectionTimeoutMS=SERVER_SELECTION_TIMEOUT_MS
        )
        cls._db_name = db_name

    @classmethod
    def close(cls) -> None:
        """Close MongoDB connection."""
        if cls.client is not None:
            cls.client.close()
            cls.client = None

    @classmethod
    def get_database(cls) -> AsyncIOMotorDatabase:
        """
        Get the configured database.

        Raises:
            RuntimeError: If MongoDB is not connected
        """
        if cls.client is None:
            raise RuntimeError("MongoDB not connected. Call MongoDB.connect() first.")
        return cls.client[cls._db_name]

    @classmethod
    async def ping(cls) -> bool:
        """Check that the server answers; False when not connected or unreachable."""
        if cls.client is None:
            return False
        try:
            await cls.client.admin.command("ping")
        except PyMongoError as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False
        return True
