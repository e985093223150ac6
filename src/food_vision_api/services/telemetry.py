"""
Gap telemetry: records of foods the local model could not identify.

Every escalation is logged so the most frequent gaps can be exported as
training-data candidates. Recording is best-effort and never fails the
detection flow; export is incremental and purge only removes entries that
have already been exported.
"""

import logging
from collections import Counter
from datetime import datetime

from food_vision_api.db.repositories.fallback_logs import FallbackLogStore
from food_vision_api.models.detection import FallbackReason
from food_vision_api.models.telemetry import (
    ExportBatch,
    ExportEntry,
    FallbackLogEntry,
    FoodGapCount,
    TelemetrySummary,
)
from food_vision_api.utils import days_ago, ensure_utc, format_report_date, utc_now

logger = logging.getLogger(__name__)

WEEKLY_DAYS = 7
WEEKLY_TOP_FOODS = 10
REPORT_RULE = "=" * 50
SECTION_RULE = "-" * 30


class GapTelemetryLogger:
    """Records, summarizes, exports and purges fallback log entries."""

    def __init__(self, store: FallbackLogStore, *, retention_days: int = 30):
        self.store = store
        self.retention_days = retention_days
        self.failure_count = 0

    async def record(self, entry: FallbackLogEntry) -> FallbackLogEntry | None:
        """
        Append an escalation entry.

        Never raises: a failed write is counted and logged, and None is
        returned.
        """
        try:
            stored = await self.store.insert(entry)
        except Exception as e:
            self.failure_count += 1
            logger.warning(
                f"Failed to record fallback entry for '{entry.food_name_from_remote}' "
                f"({self.failure_count} failures so far): {e}"
            )
            return None

        logger.debug(f"Recorded fallback entry {stored.id} ({entry.reason.value})")
        return stored

    async def summarize(self, since: datetime, until: datetime | None = None) -> TelemetrySummary:
        """Aggregate all entries in [since, until], exported or not."""
        since = ensure_utc(since)
        until = ensure_utc(until) if until is not None else utc_now()
        entries = await self.store.find_between(since, until)

        food_counts = Counter(e.food_name_from_remote for e in entries)
        reason_counts = Counter(e.reason for e in entries)

        # Highest count first; ties broken by name for a stable order
        ordered_foods = sorted(food_counts.items(), key=lambda item: (-item[1], item[0]))

        return TelemetrySummary(
            since=since,
            until=until,
            total_count=len(entries),
            per_food_counts=dict(ordered_foods),
            per_reason_counts={
                reason: reason_counts[reason] for reason in FallbackReason if reason in reason_counts
            },
        )

    async def export(self, since: datetime | None = None) -> ExportBatch:
        """
        Export entries not exported before and mark them exported.

        A second export with no new entries returns an empty batch.
        """
        now = utc_now()
        since = ensure_utc(since) if since is not None else None
        entries = await self.store.find_unexported(since)

        if entries:
            # Another export may have claimed some of these since they were read
            claimed = set(await self.store.mark_exported([e.id for e in entries if e.id]))
            entries = [e for e in entries if e.id in claimed]

        if entries:
            logger.info(f"Exported {len(entries)} fallback entries")
        else:
            logger.info("No unexported fallback entries to export")

        period_start = since or (entries[0].timestamp if entries else now)

        return ExportBatch(
            export_date=now,
            period_start=period_start,
            period_end=now,
            total_entries=len(entries),
            entries=[ExportEntry.from_log_entry(e) for e in entries],
        )

    async def purge(self, older_than: datetime) -> int:
        """Delete exported entries older than the cutoff. Unexported entries are kept."""
        deleted = await self.store.delete_exported_before(ensure_utc(older_than))
        logger.info(f"Purged {deleted} exported fallback entries older than {older_than.isoformat()}")
        return deleted

    async def purge_expired(self, now: datetime | None = None) -> int:
        """Purge exported entries past the retention window."""
        return await self.purge(days_ago(self.retention_days, now))

    async def most_common_gaps(self, limit: int = 20) -> list[FoodGapCount]:
        """Foods escalated most often across all recorded entries."""
        return await self.store.most_common(limit)

    async def weekly_summary(self, now: datetime | None = None) -> TelemetrySummary:
        now = now or utc_now()
        return await self.summarize(days_ago(WEEKLY_DAYS, now), now)

    async def generate_report(self, since: datetime | None = None) -> str:
        """Render a plain-text report of escalations (last 7 days by default)."""
        if since is None:
            summary = await self.weekly_summary()
        else:
            summary = await self.summarize(since)

        lines = [
            REPORT_RULE,
            "FALLBACK GAP REPORT",
            REPORT_RULE,
            "",
            f"Period: {format_report_date(summary.since)} - {format_report_date(summary.until)}",
            "",
            "SUMMARY",
            SECTION_RULE,
            f"Total fallbacks: {summary.total_count}",
            f"Unique foods: {summary.unique_foods}",
            "",
        ]

        top_foods = summary.top_foods(WEEKLY_TOP_FOODS)
        if top_foods:
            lines += ["TOP FOODS NEEDING REMOTE ANALYSIS", SECTION_RULE]
            lines += [
                f"{index}. {food.food_name} ({food.count} times)"
                for index, food in enumerate(top_foods, start=1)
            ]
            lines.append("")

        if summary.per_reason_counts:
            lines += ["FALLBACK REASONS", SECTION_RULE]
            lines += [
                f"{reason.readable}: {count}" for reason, count in summary.per_reason_counts.items()
            ]
            lines.append("")

        lines += [REPORT_RULE, "Consider adding these foods to training data", REPORT_RULE]
        return "\n".join(lines) + "\n"
