"""API routes for recording interactions and inspecting the ranking table."""

from fastapi import APIRouter, status

from ..schemas import CollaborationResponse, InteractionCreate, NetworkStatsResponse
from .deps import LedgerDep, RankerDep

router = APIRouter(tags=["interactions"])


@router.post(
    "/interactions",
    response_model=CollaborationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_interaction(data: InteractionCreate, ledger: LedgerDep):
    """
    Record interactions between two employees.

    Counters accumulate in both directions. Returns the employee's updated
    collaboration summary with the peer.
    """
    await ledger.record_interaction(
        employee_id=data.employee_id,
        peer_id=data.peer_id,
        interaction_type=data.interaction_type,
        count=data.count,
        minutes=data.minutes,
    )

    collaborations = await ledger.collaborations_of(data.employee_id)
    collaboration = next(c for c in collaborations if c.peer_id == data.peer_id)
    return CollaborationResponse.model_validate(collaboration)


@router.get("/rankings/stats", response_model=NetworkStatsResponse)
async def get_network_stats(ranker: RankerDep):
    """Aggregate statistics over every stored ranking."""
    stats = await ranker.network_stats()
    return NetworkStatsResponse.model_validate(stats)
