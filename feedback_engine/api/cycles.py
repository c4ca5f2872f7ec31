"""API routes for feedback cycles and assignment runs."""

from uuid import UUID

from fastapi import APIRouter, status

from ..core import SettingsDep
from ..schemas import (
    AssignmentResponse,
    AssignRequest,
    CycleCreate,
    CycleCreatedResponse,
    CycleDetailResponse,
    CycleResponse,
    CycleStatsResponse,
)
from ..services import CreateCycleInput, assignment_options
from .deps import AssignerDep, CycleManagerDep, RankerDep

router = APIRouter(prefix="/cycles", tags=["cycles"])


@router.post("", response_model=CycleCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_cycle(
    data: CycleCreate,
    manager: CycleManagerDep,
    ranker: RankerDep,
    assigner: AssignerDep,
    settings: SettingsDep,
):
    """
    Create a feedback cycle.

    Unless the cycle config sets ``auto_assign`` to false, every employee's
    ranking is refreshed and the cycle's requests are assigned immediately.
    """
    cycle = await manager.create_cycle(
        CreateCycleInput(
            name=data.name,
            start_date=data.start_date,
            end_date=data.end_date,
            cycle_type=data.cycle_type,
            config=data.config.model_dump(exclude_none=True),
            created_by=data.created_by,
        )
    )

    options = assignment_options(cycle, settings.default_peers_per_employee)
    assignment = None
    if options.auto_assign:
        await ranker.rank_all_peers()
        result = await assigner.assign_feedback_requests(
            cycle.id,
            peers_per_employee=options.peers_per_employee,
            include_360=options.include_360,
        )
        assignment = AssignmentResponse.model_validate(result)

    return CycleCreatedResponse(
        cycle=CycleResponse.model_validate(cycle),
        assignment=assignment,
    )


@router.get("/active", response_model=list[CycleResponse])
async def list_active_cycles(manager: CycleManagerDep):
    cycles = await manager.get_active_cycles()
    return [CycleResponse.model_validate(c) for c in cycles]


@router.post("/close-eligible", response_model=list[UUID])
async def close_eligible_cycles(manager: CycleManagerDep):
    """Complete every active cycle past its threshold or grace period."""
    return await manager.close_eligible_cycles()


@router.get("/{cycle_id}", response_model=CycleDetailResponse)
async def get_cycle(cycle_id: UUID, manager: CycleManagerDep):
    """Get a cycle with its request statistics."""
    cycle = await manager.get_cycle(cycle_id)
    stats = await manager.get_cycle_stats(cycle_id)
    return CycleDetailResponse(
        **CycleResponse.model_validate(cycle).model_dump(),
        stats=CycleStatsResponse.model_validate(stats),
    )


@router.get("/{cycle_id}/stats", response_model=CycleStatsResponse)
async def get_cycle_stats(cycle_id: UUID, manager: CycleManagerDep):
    stats = await manager.get_cycle_stats(cycle_id)
    return CycleStatsResponse.model_validate(stats)


@router.post("/{cycle_id}/assign", response_model=AssignmentResponse)
async def assign_cycle(
    cycle_id: UUID,
    manager: CycleManagerDep,
    ranker: RankerDep,
    assigner: AssignerDep,
    settings: SettingsDep,
    data: AssignRequest | None = None,
):
    """
    Run assignment for an active cycle.

    Safe to repeat: existing assignments are skipped, so a second run only
    fills gaps left by new rankings or new employees.
    """
    cycle = await manager.get_cycle(cycle_id)
    options = assignment_options(cycle, settings.default_peers_per_employee)
    data = data or AssignRequest()

    if data.refresh_rankings:
        await ranker.rank_all_peers()

    result = await assigner.assign_feedback_requests(
        cycle_id,
        peers_per_employee=data.peers_per_employee or options.peers_per_employee,
        include_360=options.include_360 if data.include_360 is None else data.include_360,
    )
    return AssignmentResponse.model_validate(result)


# =============================================================================
# TRANSITIONS
# =============================================================================


@router.post("/{cycle_id}/complete", response_model=CycleResponse)
async def complete_cycle(cycle_id: UUID, manager: CycleManagerDep):
    cycle = await manager.complete_cycle(cycle_id)
    return CycleResponse.model_validate(cycle)


@router.post("/{cycle_id}/archive", response_model=CycleResponse)
async def archive_cycle(cycle_id: UUID, manager: CycleManagerDep):
    cycle = await manager.archive_cycle(cycle_id)
    return CycleResponse.model_validate(cycle)
