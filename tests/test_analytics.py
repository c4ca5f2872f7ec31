"""Tests for completion analytics."""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_engine.core import FrozenClock
from feedback_engine.models import FeedbackRequest, RequestStatus, RequestType
from feedback_engine.services import (
    CreateCycleInput,
    CycleManager,
    CycleNotFoundError,
    EmployeeNotFoundError,
    FeedbackAnalytics,
    RequestCounts,
)


async def new_cycle(session, clock, name):
    return await CycleManager(session, clock).create_cycle(
        CreateCycleInput(
            name=name,
            start_date=clock.now(),
            end_date=clock.now() + timedelta(days=14),
        )
    )


async def owe(session, cycle, provider, requester, status):
    session.add(FeedbackRequest(
        requester_id=requester.id,
        provider_id=provider.id,
        cycle_id=cycle.id,
        request_type=RequestType.PEER,
        status=status,
        assigned_at=cycle.start_date,
        due_date=cycle.end_date,
    ))
    await session.flush()


@pytest.fixture
async def org(session: AsyncSession, clock: FrozenClock, make_employee):
    """
    Lead manages Ana and Raj; Kim is outside the team.

    Spring: Ana owes 2 (1 done), Raj owes 1 (done), Kim owes 1 (pending).
    Summer: Ana owes 1 (overdue).
    """
    lead = await make_employee("Lead", is_manager=True)
    ana = await make_employee("Ana", manager=lead)
    raj = await make_employee("Raj", manager=lead)
    kim = await make_employee("Kim")

    spring = await new_cycle(session, clock, "Spring")
    summer = await new_cycle(session, clock, "Summer")
    await owe(session, spring, ana, raj, RequestStatus.COMPLETED)
    await owe(session, spring, ana, kim, RequestStatus.PENDING)
    await owe(session, spring, raj, ana, RequestStatus.COMPLETED)
    await owe(session, spring, kim, ana, RequestStatus.PENDING)
    await owe(session, summer, ana, kim, RequestStatus.OVERDUE)

    return {"lead": lead, "ana": ana, "raj": raj, "kim": kim, "spring": spring, "summer": summer}


class TestCompletionRates:

    async def test_overall(self, session: AsyncSession, org):
        counts = await FeedbackAnalytics(session).completion_rates()
        assert counts == RequestCounts(total=5, completed=2, pending=2, overdue=1)
        assert counts.completion_rate == 40.0

    async def test_single_cycle(self, session: AsyncSession, org):
        analytics = FeedbackAnalytics(session)

        spring = await analytics.completion_rates(org["spring"].id)
        assert spring.total == 4
        assert spring.completion_rate == 50.0

        summer = await analytics.completion_rates(org["summer"].id)
        assert summer.completion_rate == 0.0

    async def test_no_requests(self, session: AsyncSession):
        counts = await FeedbackAnalytics(session).completion_rates()
        assert counts.total == 0
        assert counts.completion_rate is None

    async def test_unknown_cycle(self, session: AsyncSession):
        with pytest.raises(CycleNotFoundError):
            await FeedbackAnalytics(session).completion_rates(uuid4())


class TestTeamCompletion:

    async def test_team_and_members(self, session: AsyncSession, org):
        report = await FeedbackAnalytics(session).team_completion(org["lead"].id)

        assert report.team == RequestCounts(total=4, completed=2, pending=1, overdue=1)
        assert [m.employee.name for m in report.members] == ["Ana", "Raj"]
        assert report.members[0].counts.completion_rate == pytest.approx(33.33)
        assert report.members[1].counts.completion_rate == 100.0

    async def test_filtered_by_cycle(self, session: AsyncSession, org):
        report = await FeedbackAnalytics(session).team_completion(
            org["lead"].id, cycle_id=org["spring"].id
        )
        assert report.cycle_id == org["spring"].id
        assert report.team.total == 3
        assert report.team.completion_rate == pytest.approx(66.67)

    async def test_manager_without_reports(self, session: AsyncSession, org):
        report = await FeedbackAnalytics(session).team_completion(org["kim"].id)
        assert report.members == []
        assert report.team.total == 0
        assert report.team.completion_rate is None

    async def test_unknown_manager(self, session: AsyncSession):
        with pytest.raises(EmployeeNotFoundError):
            await FeedbackAnalytics(session).team_completion(404)
