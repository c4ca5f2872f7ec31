"""API routes for completion analytics."""

from uuid import UUID

from fastapi import APIRouter, Query

from ..schemas import (
    CompletionStatsResponse,
    EmployeeRef,
    MemberCompletionResponse,
    TeamCompletionResponse,
)
from .deps import AnalyticsDep

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/completion-rates", response_model=CompletionStatsResponse)
async def get_completion_rates(
    analytics: AnalyticsDep,
    cycle_id: UUID | None = Query(None, description="Restrict to one cycle"),
):
    counts = await analytics.completion_rates(cycle_id)
    return CompletionStatsResponse.model_validate(counts)


@router.get("/team/{manager_id}/completion", response_model=TeamCompletionResponse)
async def get_team_completion(
    manager_id: int,
    analytics: AnalyticsDep,
    cycle_id: UUID | None = Query(None),
):
    """How much of the feedback a manager's direct reports owe has been given."""
    report = await analytics.team_completion(manager_id, cycle_id)
    return TeamCompletionResponse(
        manager_id=report.manager_id,
        cycle_id=report.cycle_id,
        team=CompletionStatsResponse.model_validate(report.team),
        members=[
            MemberCompletionResponse(
                employee=EmployeeRef.model_validate(m.employee),
                counts=CompletionStatsResponse.model_validate(m.counts),
            )
            for m in report.members
        ],
    )
