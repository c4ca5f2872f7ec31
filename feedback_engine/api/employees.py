"""API routes for the employee directory, collaborations and peer rankings."""

from fastapi import APIRouter, Query

from ..schemas import (
    CollaborationMetricsResponse,
    CollaborationResponse,
    EmployeeResponse,
    RankedPeerResponse,
    RankingBatchResponse,
)
from .deps import LedgerDep, OrgGraphDep, RankerDep

router = APIRouter(prefix="/employees", tags=["employees"])


@router.get("", response_model=list[EmployeeResponse])
async def list_employees(graph: OrgGraphDep):
    """List every employee, ordered by name."""
    employees = await graph.list_directory()
    return [EmployeeResponse.model_validate(e) for e in employees]


@router.post("/rankings/refresh", response_model=RankingBatchResponse)
async def refresh_all_rankings(ranker: RankerDep):
    """Recompute peer rankings for every employee."""
    result = await ranker.rank_all_peers()
    return RankingBatchResponse.model_validate(result)


@router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(employee_id: int, graph: OrgGraphDep):
    employee = await graph.get_employee(employee_id)
    return EmployeeResponse.model_validate(employee)


@router.get("/{employee_id}/reports", response_model=list[EmployeeResponse])
async def get_direct_reports(employee_id: int, graph: OrgGraphDep):
    """Direct reports of a manager (empty for individual contributors)."""
    await graph.get_employee(employee_id)
    reports = await graph.direct_reports(employee_id)
    return [EmployeeResponse.model_validate(e) for e in reports]


# =============================================================================
# RANKINGS
# =============================================================================


@router.get("/{employee_id}/rankings", response_model=list[RankedPeerResponse])
async def get_rankings(
    employee_id: int,
    graph: OrgGraphDep,
    ranker: RankerDep,
    limit: int = Query(10, ge=1, le=100),
):
    """Stored ranking for an employee, best collaborator first."""
    await graph.get_employee(employee_id)
    ranked = await ranker.ranked_peers(employee_id, limit=limit)
    return [RankedPeerResponse.model_validate(r) for r in ranked]


@router.post("/{employee_id}/rankings/refresh", response_model=list[RankedPeerResponse])
async def refresh_rankings(employee_id: int, ranker: RankerDep):
    """Recompute and replace one employee's ranking."""
    ranked = await ranker.rank_peers(employee_id)
    return [RankedPeerResponse.model_validate(r) for r in ranked]


# =============================================================================
# COLLABORATIONS
# =============================================================================


@router.get("/{employee_id}/collaborations", response_model=list[CollaborationResponse])
async def get_collaborations(employee_id: int, graph: OrgGraphDep, ledger: LedgerDep):
    await graph.get_employee(employee_id)
    collaborations = await ledger.collaborations_of(employee_id)
    return [CollaborationResponse.model_validate(c) for c in collaborations]


@router.get(
    "/{employee_id}/collaborations/metrics",
    response_model=CollaborationMetricsResponse,
)
async def get_collaboration_metrics(employee_id: int, graph: OrgGraphDep, ledger: LedgerDep):
    await graph.get_employee(employee_id)
    metrics = await ledger.aggregated_metrics(employee_id)
    return CollaborationMetricsResponse.model_validate(metrics)
