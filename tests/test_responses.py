"""Tests for submitting feedback responses."""

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_engine.core import FrozenClock
from feedback_engine.models import FeedbackRequest, RequestStatus, RequestType
from feedback_engine.services import (
    CreateCycleInput,
    CycleManager,
    InvalidResponseError,
    RequestNotFoundError,
    ResponseHistory,
    SubmitResponseInput,
)


@pytest.fixture
async def request_pair(session: AsyncSession, clock: FrozenClock, make_employee):
    """A pending request from requester to provider in a fresh cycle."""
    requester = await make_employee("Requester")
    provider = await make_employee("Provider")
    cycle = await CycleManager(session, clock).create_cycle(
        CreateCycleInput(
            name="Pulse",
            start_date=clock.now(),
            end_date=clock.now() + timedelta(days=7),
        )
    )
    request = FeedbackRequest(
        requester_id=requester.id,
        provider_id=provider.id,
        cycle_id=cycle.id,
        request_type=RequestType.PEER,
        status=RequestStatus.PENDING,
        assigned_at=clock.now(),
        due_date=cycle.end_date,
    )
    session.add(request)
    await session.flush()
    return requester, provider, request


def submission(request, **overrides) -> SubmitResponseInput:
    values = dict(
        request_id=request.id,
        requester_id=request.requester_id,
        provider_id=request.provider_id,
        overall_rating=4,
        strengths="Clear design docs",
    )
    values.update(overrides)
    return SubmitResponseInput(**values)


class TestSubmitResponse:

    async def test_submit_completes_request(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        request_pair,
    ):
        requester, provider, request = request_pair
        clock.advance(days=2)

        response = await ResponseHistory(session, clock).submit_response(submission(request))

        assert response.id is not None
        assert response.submitted_at == clock.now()
        assert request.status == RequestStatus.COMPLETED
        assert request.completed_at == clock.now()

    async def test_second_submission_rejected(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        request_pair,
    ):
        _, _, request = request_pair
        history = ResponseHistory(session, clock)
        await history.submit_response(submission(request))

        with pytest.raises(InvalidResponseError):
            await history.submit_response(submission(request))

    async def test_participants_must_match(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        request_pair,
    ):
        requester, _, request = request_pair
        with pytest.raises(InvalidResponseError):
            await ResponseHistory(session, clock).submit_response(
                submission(request, provider_id=requester.id)
            )

    async def test_rating_out_of_range(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        request_pair,
    ):
        _, _, request = request_pair
        with pytest.raises(InvalidResponseError):
            await ResponseHistory(session, clock).submit_response(
                submission(request, technical_rating=6)
            )
        assert request.status == RequestStatus.PENDING

    async def test_unknown_request(self, session: AsyncSession, clock: FrozenClock):
        with pytest.raises(RequestNotFoundError):
            await ResponseHistory(session, clock).submit_response(
                SubmitResponseInput(request_id=1, requester_id=1, provider_id=2, overall_rating=3)
            )


class TestResponseHistory:

    async def test_recent_providers_window(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        request_pair,
    ):
        requester, provider, request = request_pair
        history = ResponseHistory(session, clock)
        await history.submit_response(submission(request))

        assert await history.recent_providers_of(
            requester.id, clock.now() - timedelta(days=30)
        ) == {provider.id}
        assert await history.recent_providers_of(requester.id, clock.now()) == set()
        assert await history.recent_providers_of(provider.id, clock.now() - timedelta(days=30)) == set()

    async def test_responses_received(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        request_pair,
    ):
        requester, provider, request = request_pair
        history = ResponseHistory(session, clock)
        await history.submit_response(submission(request, is_anonymous=True))

        received = await history.responses_received(requester.id)
        assert len(received) == 1
        assert received[0].is_anonymous is True
        assert await history.responses_received(provider.id) == []
