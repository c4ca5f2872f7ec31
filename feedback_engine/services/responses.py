"""
Response History: submitted feedback and the provider history it implies.

The assignment engine only reads ``recent_providers_of``; submission lives here
too because it is what advances a request to ``completed``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, SystemClock
from ..models import FeedbackRequest, FeedbackResponse, RequestStatus
from .exceptions import InvalidResponseError, RequestNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class SubmitResponseInput:
    """Input for submitting feedback against a request."""
    request_id: int
    requester_id: int
    provider_id: int
    overall_rating: int
    strengths: str | None = None
    areas_for_improvement: str | None = None
    specific_examples: str | None = None
    actionable_suggestions: str | None = None
    additional_context: str | None = None
    collaboration_rating: int | None = None
    communication_rating: int | None = None
    technical_rating: int | None = None
    is_anonymous: bool = False


class ResponseHistory:
    """Feedback responses and provider lookups."""

    def __init__(self, session: AsyncSession, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    async def recent_providers_of(self, requester_id: int, since: datetime) -> set[int]:
        """Employees who submitted feedback to ``requester_id`` after ``since``."""
        result = await self._session.execute(
            select(FeedbackResponse.provider_id)
            .where(
                FeedbackResponse.requester_id == requester_id,
                FeedbackResponse.submitted_at > since,
            )
            .distinct()
        )
        return set(result.scalars().all())

    async def submit_response(self, input: SubmitResponseInput) -> FeedbackResponse:
        """
        Store a response and mark its request completed.

        Flow:
        1. Load the request (must exist)
        2. Requester/provider must match the request
        3. Request must not already be completed
        4. INSERT response, UPDATE request status
        """
        request = await self._session.get(FeedbackRequest, input.request_id)
        if request is None:
            raise RequestNotFoundError(f"Feedback request {input.request_id} not found")

        if (
            request.requester_id != input.requester_id
            or request.provider_id != input.provider_id
        ):
            raise InvalidResponseError(
                f"Response does not match request {input.request_id} participants"
            )
        if request.status == RequestStatus.COMPLETED:
            raise InvalidResponseError(
                f"Feedback request {input.request_id} is already completed"
            )

        for label, rating in (
            ("overall_rating", input.overall_rating),
            ("collaboration_rating", input.collaboration_rating),
            ("communication_rating", input.communication_rating),
            ("technical_rating", input.technical_rating),
        ):
            if rating is not None and not 1 <= rating <= 5:
                raise InvalidResponseError(f"{label} must be between 1 and 5")

        now = self._clock.now()
        response = FeedbackResponse(
            request_id=request.id,
            requester_id=request.requester_id,
            provider_id=request.provider_id,
            strengths=input.strengths,
            areas_for_improvement=input.areas_for_improvement,
            specific_examples=input.specific_examples,
            actionable_suggestions=input.actionable_suggestions,
            additional_context=input.additional_context,
            overall_rating=input.overall_rating,
            collaboration_rating=input.collaboration_rating,
            communication_rating=input.communication_rating,
            technical_rating=input.technical_rating,
            is_anonymous=input.is_anonymous,
            submitted_at=now,
        )
        self._session.add(response)

        request.status = RequestStatus.COMPLETED
        request.completed_at = now

        await self._session.flush()
        logger.info(
            f"Feedback response {response.id} submitted for request {request.id}"
        )
        return response

    async def responses_received(self, employee_id: int) -> list[FeedbackResponse]:
        result = await self._session.execute(
            select(FeedbackResponse)
            .where(FeedbackResponse.requester_id == employee_id)
            .order_by(FeedbackResponse.submitted_at.desc(), FeedbackResponse.id.desc())
        )
        return list(result.scalars().all())
