"""Repository for gap telemetry (escalation) log entries."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any
from uuid import uuid4

from food_vision_api.models.telemetry import FallbackLogEntry, FoodGapCount
from food_vision_api.utils import utc_now

from .base import BaseRepository, to_object_ids


class FallbackLogStore(ABC):
    """
    Storage contract for fallback log entries.

    Entries are inserted once and afterwards only have ``exported`` flipped.
    Deletion is restricted to exported entries.
    """

    @abstractmethod
    async def insert(self, entry: FallbackLogEntry) -> FallbackLogEntry:
        """Insert an entry and return it with its store-assigned id."""
        ...

    @abstractmethod
    async def find_between(self, since: datetime, until: datetime) -> list[FallbackLogEntry]:
        """All entries (exported or not) with since <= timestamp <= until, oldest first."""
        ...

    @abstractmethod
    async def find_unexported(self, since: datetime | None = None) -> list[FallbackLogEntry]:
        """Entries not yet exported, optionally from ``since`` on, oldest first."""
        ...

    @abstractmethod
    async def mark_exported(self, ids: list[str]) -> list[str]:
        """
        Flip ``exported`` on those of the given entries not yet exported.

        Returns the ids this call flipped. An entry is claimed by at most one
        call, so overlapping exports never hand out the same entry twice.
        """
        ...

    @abstractmethod
    async def delete_exported_before(self, cutoff: datetime) -> int:
        """Delete exported entries older than ``cutoff``. Returns the number deleted."""
        ...

    @abstractmethod
    async def most_common(self, limit: int = 20) -> list[FoodGapCount]:
        """Food names by escalation count across all entries, highest first."""
        ...


class FallbackLogRepository(BaseRepository[FallbackLogEntry], FallbackLogStore):
    """
    MongoDB-backed fallback log store.

    Collection: fallback_logs
    """

    model_class = FallbackLogEntry

    def _to_document(self, entry: FallbackLogEntry) -> dict[str, Any]:
        doc = super()._to_document(entry)
        doc["reason"] = entry.reason.value
        return doc

    async def ensure_indexes(self) -> None:
        """Create the indexes used by range queries, export and purge."""
        await self.collection.create_index([("timestamp", 1)])
        await self.collection.create_index([("exported", 1), ("timestamp", 1)])
        await self.collection.create_index([("export_batch", 1)])

    async def insert(self, entry: FallbackLogEntry) -> FallbackLogEntry:
        inserted_id = await self.insert_one(self._to_document(entry))
        return entry.model_copy(update={"id": inserted_id})

    async def find_between(self, since: datetime, until: datetime) -> list[FallbackLogEntry]:
        return await self.find_many(
            filter={"timestamp": {"$gte": since, "$lte": until}},
            sort=[("timestamp", 1)],
        )

    async def find_unexported(self, since: datetime | None = None) -> list[FallbackLogEntry]:
        filter: dict[str, Any] = {"exported": False}
        if since is not None:
            filter["timestamp"] = {"$gte": since}
        return await self.find_many(filter=filter, sort=[("timestamp", 1)])

    async def mark_exported(self, ids: list[str]) -> list[str]:
        object_ids = to_object_ids(ids)
        if not object_ids:
            return []
        # Each document is flipped by exactly one update; the batch tag tells us which
        batch_id = uuid4().hex
        result = await self.collection.update_many(
            {"_id": {"$in": object_ids}, "exported": False},
            {"$set": {"exported": True, "exported_at": utc_now(), "export_batch": batch_id}},
        )
        if not result.modified_count:
            return []
        cursor = self.collection.find({"export_batch": batch_id}, {"_id": 1})
        docs = await cursor.to_list(length=None)
        return [str(doc["_id"]) for doc in docs]

    async def delete_exported_before(self, cutoff: datetime) -> int:
        # The exported flag is part of the filter so unexported data is never matched
        result = await self.collection.delete_many(
            {"exported": True, "timestamp": {"$lt": cutoff}}
        )
        return result.deleted_count

    async def most_common(self, limit: int = 20) -> list[FoodGapCount]:
        pipeline = [
            {"$group": {"_id": "$food_name_from_remote", "count": {"$sum": 1}}},
            {"$sort": {"count": -1, "_id": 1}},
            {"$limit": limit},
        ]
        rows = await self.aggregate(pipeline, limit=limit)
        return [FoodGapCount(food_name=row["_id"], count=row["count"]) for row in rows]
