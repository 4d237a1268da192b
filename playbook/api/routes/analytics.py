"""
Analytics and insight endpoints.

Series are re-derived from the full log set on every request; there is
no cached aggregate to fall out of date.
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from ...core.analytics import derive_dashboard, derive_reports
from ...core.errors import StoreReadError
from ...core.logs import LogRecord, list_logs
from ...core.store import DocumentStore
from ..dependencies import AuthenticatedUser, DocumentStoreDep, InsightServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class DashboardResponse(BaseModel):
    """Squat progression and throwing feel over time."""
    squat_series: list[dict[str, Any]] = Field(description="{date, weight} points")
    throw_feel_series: list[dict[str, Any]] = Field(description="{date, feel} points")


class ReportsResponse(BaseModel):
    """Wellness trend and sleep against arm feel on throwing days."""
    wellness_series: list[dict[str, Any]] = Field(description="Wellness records by date")
    combined_sleep_arm_series: list[dict[str, Any]] = Field(
        description="{date, sleep, armFeel} for dates with both a check-in and a throw"
    )


class InsightResponse(BaseModel):
    """Narrative summary of the player's reports."""
    insight: str


async def _records(store: DocumentStore, player_id: str) -> list[LogRecord]:
    try:
        return await list_logs(store, player_id)
    except StoreReadError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Could not read logs: {e}",
        )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/{player_id}/analytics/dashboard",
    response_model=DashboardResponse,
    status_code=status.HTTP_200_OK,
    summary="Dashboard series",
)
async def get_dashboard(
    player_id: str,
    api_key: AuthenticatedUser = None,
    store: DocumentStoreDep = None,
) -> DashboardResponse:
    chart = derive_dashboard(await _records(store, player_id)).to_chart()
    return DashboardResponse(
        squat_series=chart["squatSeries"],
        throw_feel_series=chart["throwFeelSeries"],
    )


@router.get(
    "/{player_id}/analytics/reports",
    response_model=ReportsResponse,
    status_code=status.HTTP_200_OK,
    summary="Reports series",
)
async def get_reports(
    player_id: str,
    api_key: AuthenticatedUser = None,
    store: DocumentStoreDep = None,
) -> ReportsResponse:
    chart = derive_reports(await _records(store, player_id)).to_chart()
    return ReportsResponse(
        wellness_series=chart["wellnessSeries"],
        combined_sleep_arm_series=chart["combinedSleepArmSeries"],
    )


@router.post(
    "/{player_id}/insights",
    response_model=InsightResponse,
    status_code=status.HTTP_200_OK,
    summary="Generate training insights",
    description="Best effort: returns a placeholder message when the AI service is unavailable.",
)
async def generate_insights(
    player_id: str,
    api_key: AuthenticatedUser = None,
    store: DocumentStoreDep = None,
    insights: InsightServiceDep = None,
) -> InsightResponse:
    reports = derive_reports(await _records(store, player_id))
    logger.info(
        "Generating insights",
        extra={
            "player_id": player_id,
            "wellness_entries": len(reports.wellness_series),
        }
    )
    return InsightResponse(insight=await insights.summarize_reports(reports))
