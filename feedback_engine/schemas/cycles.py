"""Pydantic schemas for feedback cycles and assignment runs."""

from datetime import datetime
from uuid import UUID

from pydantic import Field, model_validator

from ..core.clock import ensure_utc
from ..models import CycleStatus, CycleType
from .base import FeedbackBaseModel
from .employees import BatchFailureResponse
from .feedback import FeedbackRequestResponse


class CycleConfig(FeedbackBaseModel):
    """Assignment policy stored with a cycle."""

    peers_per_employee: int | None = Field(default=None, ge=1, le=20)
    include_manager: bool = False
    include_reports: bool = False
    auto_assign: bool = True


class CycleCreate(FeedbackBaseModel):
    """Schema for creating a feedback cycle."""

    name: str = Field(..., min_length=1, max_length=255)
    cycle_type: CycleType = Field(default=CycleType.PEER, alias="type")
    start_date: datetime
    end_date: datetime
    config: CycleConfig = Field(default_factory=CycleConfig)
    created_by: int | None = None

    @model_validator(mode="after")
    def validate_dates(self) -> "CycleCreate":
        if ensure_utc(self.end_date) < ensure_utc(self.start_date):
            raise ValueError("end_date must not precede start_date")
        return self


class CycleResponse(FeedbackBaseModel):
    """Feedback cycle."""

    id: UUID
    name: str
    cycle_type: CycleType
    start_date: datetime
    end_date: datetime
    status: CycleStatus
    config: dict
    created_by: int | None = None
    created_at: datetime
    closed_at: datetime | None = None


class CycleStatsResponse(FeedbackBaseModel):
    """Request counts for a cycle; completion_rate is null when it has none."""

    cycle_id: UUID
    total: int
    completed: int
    pending: int
    overdue: int
    completion_rate: float | None = None


class CycleDetailResponse(CycleResponse):
    stats: CycleStatsResponse


# =============================================================================
# ASSIGNMENT
# =============================================================================


class AssignRequest(FeedbackBaseModel):
    """Explicit assignment run; omitted fields fall back to the cycle config."""

    peers_per_employee: int | None = Field(default=None, ge=1, le=20)
    include_360: bool | None = None
    refresh_rankings: bool = True


class AssignmentResponse(FeedbackBaseModel):
    """Outcome of an assignment run."""

    cycle_id: UUID
    created_count: int
    skipped: int
    employees_processed: int
    created: list[FeedbackRequestResponse] = []
    failed: list[BatchFailureResponse] = []


class CycleCreatedResponse(FeedbackBaseModel):
    cycle: CycleResponse
    assignment: AssignmentResponse | None = None
