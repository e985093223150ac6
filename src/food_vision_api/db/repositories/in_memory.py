"""
In-memory fallback log store.

Used for local development without MongoDB (TELEMETRY_BACKEND=memory) and
in tests. Entries live only as long as the process.
"""

from collections import Counter
from datetime import datetime
from uuid import uuid4

from food_vision_api.models.telemetry import FallbackLogEntry, FoodGapCount
from food_vision_api.utils import ensure_utc

from .fallback_logs import FallbackLogStore


class InMemoryFallbackLogRepository(FallbackLogStore):
    """Dict-backed implementation of the fallback log store."""

    def __init__(self) -> None:
        self._entries: dict[str, FallbackLogEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def _sorted(self, entries) -> list[FallbackLogEntry]:
        return sorted(entries, key=lambda e: e.timestamp)

    async def insert(self, entry: FallbackLogEntry) -> FallbackLogEntry:
        stored = entry.model_copy(update={"id": uuid4().hex, "timestamp": ensure_utc(entry.timestamp)})
        self._entries[stored.id] = stored
        return stored

    async def find_between(self, since: datetime, until: datetime) -> list[FallbackLogEntry]:
        since, until = ensure_utc(since), ensure_utc(until)
        return self._sorted(e for e in self._entries.values() if since <= e.timestamp <= until)

    async def find_unexported(self, since: datetime | None = None) -> list[FallbackLogEntry]:
        lower = ensure_utc(since) if since is not None else None
        return self._sorted(
            e
            for e in self._entries.values()
            if not e.exported and (lower is None or e.timestamp >= lower)
        )

    async def mark_exported(self, ids: list[str]) -> list[str]:
        changed = []
        for id in ids:
            entry = self._entries.get(id)
            if entry is not None and not entry.exported:
                self._entries[id] = entry.model_copy(update={"exported": True})
                changed.append(id)
        return changed

    async def delete_exported_before(self, cutoff: datetime) -> int:
        cutoff = ensure_utc(cutoff)
        doomed = [
            id for id, e in self._entries.items() if e.exported and e.timestamp < cutoff
        ]
        for id in doomed:
            del self._entries[id]
        return len(doomed)

    async def most_common(self, limit: int = 20) -> list[FoodGapCount]:
        counts = Counter(e.food_name_from_remote for e in self._entries.values())
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [FoodGapCount(food_name=name, count=count) for name, count in ranked[:limit]]
