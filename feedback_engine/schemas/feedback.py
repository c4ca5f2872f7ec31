"""Pydantic schemas for feedback requests and responses."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from ..models import RequestStatus, RequestType
from .base import EmployeeRef, FeedbackBaseModel


class FeedbackRequestResponse(FeedbackBaseModel):
    """A feedback obligation."""

    id: int
    requester_id: int
    provider_id: int
    cycle_id: UUID
    request_type: RequestType
    status: RequestStatus
    assigned_at: datetime
    due_date: datetime
    completed_at: datetime | None = None
    reminder_count: int = 0


class FeedbackRequestDetail(FeedbackRequestResponse):
    """Request with the people involved embedded."""

    requester: EmployeeRef | None = None
    provider: EmployeeRef | None = None
    cycle_name: str | None = None


class RequestStatusUpdate(FeedbackBaseModel):
    status: RequestStatus


class FeedbackResponseCreate(FeedbackBaseModel):
    """Structured feedback submitted against a request."""

    request_id: int
    requester_id: int
    provider_id: int
    strengths: str | None = None
    areas_for_improvement: str | None = None
    specific_examples: str | None = None
    actionable_suggestions: str | None = None
    additional_context: str | None = None
    overall_rating: int = Field(..., ge=1, le=5)
    collaboration_rating: int | None = Field(default=None, ge=1, le=5)
    communication_rating: int | None = Field(default=None, ge=1, le=5)
    technical_rating: int | None = Field(default=None, ge=1, le=5)
    is_anonymous: bool = False


class FeedbackResponseOut(FeedbackBaseModel):
    """Submitted feedback. ``provider_id`` is withheld for anonymous responses."""

    id: int
    request_id: int
    requester_id: int
    provider_id: int | None = None
    strengths: str | None = None
    areas_for_improvement: str | None = None
    specific_examples: str | None = None
    actionable_suggestions: str | None = None
    additional_context: str | None = None
    overall_rating: int
    collaboration_rating: int | None = None
    communication_rating: int | None = None
    technical_rating: int | None = None
    is_anonymous: bool = False
    submitted_at: datetime
