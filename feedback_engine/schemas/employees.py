"""Pydantic schemas for employees, interactions and peer rankings."""

from datetime import datetime

from pydantic import Field, model_validator

from ..models import InteractionType
from .base import EmployeeRef, FeedbackBaseModel


class EmployeeResponse(EmployeeRef):
    """Full employee record."""

    azure_id: str | None = None
    manager_id: int | None = None
    is_manager: bool = False
    created_at: datetime | None = None


# =============================================================================
# INTERACTIONS
# =============================================================================


class InteractionCreate(FeedbackBaseModel):
    """Record interactions between two employees (stored in both directions)."""

    employee_id: int
    peer_id: int
    interaction_type: InteractionType
    count: int = Field(default=1, ge=0)
    minutes: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def validate_distinct(self) -> "InteractionCreate":
        if self.employee_id == self.peer_id:
            raise ValueError("employee_id and peer_id must differ")
        return self


class CollaborationResponse(FeedbackBaseModel):
    """Interactions with one peer, all types folded together."""

    peer_id: int
    peer_name: str
    peer_department: str | None = None
    peer_role: str | None = None
    interaction_types: list[str]
    total_interactions: int
    total_minutes: int
    last_interaction_at: datetime


class CollaborationMetricsResponse(FeedbackBaseModel):
    unique_collaborators: int
    total_interactions: int
    total_minutes: int
    avg_interactions_per_peer: float


# =============================================================================
# RANKINGS
# =============================================================================


class RankedPeerResponse(FeedbackBaseModel):
    """One peer in an employee's collaboration ranking."""

    peer_id: int
    collaboration_score: float
    rank_position: int
    calculated_at: datetime
    peer_name: str | None = None
    peer_email: str | None = None
    peer_department: str | None = None
    peer_role: str | None = None


class BatchFailureResponse(FeedbackBaseModel):
    employee_id: int
    error: str


class RankingBatchResponse(FeedbackBaseModel):
    """Outcome of recomputing every employee's ranking."""

    employees_processed: int
    succeeded: int
    rankings_written: int
    failed: list[BatchFailureResponse] = []


class NetworkStatsResponse(FeedbackBaseModel):
    total_employees: int
    total_peers: int
    avg_collaboration_score: float | None = None
    max_collaboration_score: float | None = None
    min_collaboration_score: float | None = None
