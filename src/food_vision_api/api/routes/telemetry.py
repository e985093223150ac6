"""Gap telemetry API routes.

Summaries, exports and retention of foods the local model missed.
"""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Query
from fastapi.responses import PlainTextResponse, Response

from food_vision_api.api.dependencies import TelemetryDep
from food_vision_api.models.food_scan import GapsResponse, PurgeResponse, TelemetrySummaryResponse
from food_vision_api.utils import days_ago

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/summary", response_model=TelemetrySummaryResponse)
async def get_summary(
    telemetry: TelemetryDep,
    days: Annotated[int, Query(ge=1, le=365, description="Days to look back")] = 7,
) -> TelemetrySummaryResponse:
    """Escalation counts per food and per reason over the last N days."""
    summary = await telemetry.summarize(days_ago(days))
    return TelemetrySummaryResponse(
        since=summary.since,
        until=summary.until,
        total_count=summary.total_count,
        unique_foods=summary.unique_foods,
        per_food_counts=summary.per_food_counts,
        per_reason_counts=summary.per_reason_counts,
        top_foods=summary.top_foods(),
    )


@router.get("/gaps", response_model=GapsResponse)
async def get_common_gaps(
    telemetry: TelemetryDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> GapsResponse:
    """Foods escalated most often, all time."""
    return GapsResponse(gaps=await telemetry.most_common_gaps(limit))


@router.post("/export")
async def export_entries(
    telemetry: TelemetryDep,
    since: Annotated[datetime | None, Query(description="Only export entries from this time on")] = None,
) -> Response:
    """
    Export entries not exported before and mark them exported.

    Returns the batch as JSON with camelCase keys.
    """
    batch = await telemetry.export(since)
    return Response(content=batch.to_json(), media_type="application/json")


@router.post("/purge", response_model=PurgeResponse)
async def purge_expired(telemetry: TelemetryDep) -> PurgeResponse:
    """Delete exported entries past the retention window."""
    cutoff = days_ago(telemetry.retention_days)
    deleted = await telemetry.purge(cutoff)
    return PurgeResponse(deleted=deleted, cutoff=cutoff)


@router.get("/report", response_class=PlainTextResponse)
async def get_report(
    telemetry: TelemetryDep,
    days: Annotated[int, Query(ge=1, le=365)] = 7,
) -> str:
    """Plain-text report of escalations over the last N days."""
    return await telemetry.generate_report(days_ago(days))
