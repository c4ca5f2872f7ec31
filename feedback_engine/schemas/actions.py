"""Pydantic schemas for follow-up actions and completion analytics."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from ..models import ActionStatus
from .base import EmployeeRef, FeedbackBaseModel


class ActionCreate(FeedbackBaseModel):
    """Schema for assigning a follow-up action."""

    employee_id: int
    assigned_by: int
    title: str = Field(..., min_length=1, max_length=255)
    action_type: str = Field(default="development", max_length=64)
    description: str | None = None
    response_id: int | None = None
    due_date: datetime | None = None


class ActionStatusUpdate(FeedbackBaseModel):
    status: ActionStatus


class ActionResponse(FeedbackBaseModel):
    """Follow-up action with both people embedded."""

    id: int
    response_id: int | None = None
    employee_id: int
    assigned_by: int
    action_type: str
    title: str
    description: str | None = None
    status: ActionStatus
    due_date: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    employee: EmployeeRef | None = None
    assigner: EmployeeRef | None = None


# =============================================================================
# ANALYTICS
# =============================================================================


class CompletionStatsResponse(FeedbackBaseModel):
    """Request counts; completion_rate is null when there are no requests."""

    total: int
    completed: int
    pending: int
    overdue: int
    completion_rate: float | None = None


class MemberCompletionResponse(FeedbackBaseModel):
    employee: EmployeeRef
    counts: CompletionStatsResponse


class TeamCompletionResponse(FeedbackBaseModel):
    """Completion of the requests a manager's direct reports owe."""

    manager_id: int
    cycle_id: UUID | None = None
    team: CompletionStatsResponse
    members: list[MemberCompletionResponse] = []
