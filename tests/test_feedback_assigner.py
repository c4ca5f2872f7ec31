"""
Tests for the Feedback Assigner - Verifying Assignment Guarantees.

These tests verify:
1. PEERS: Top ranked peers become requests, at most peers_per_employee each
2. IDEMPOTENCE: Re-running a cycle creates nothing new
3. RECENCY: Recent providers are skipped, the next candidate steps in
4. 360: Manager and upward requests follow the org chart
5. LIFECYCLE: Only active cycles accept assignments
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_engine.core import FrozenClock
from feedback_engine.models import (
    CycleType,
    FeedbackRequest,
    InteractionType,
    RequestStatus,
    RequestType,
)
from feedback_engine.services import (
    CreateCycleInput,
    CycleClosedError,
    CycleManager,
    CycleNotFoundError,
    FeedbackAssigner,
    InteractionLedger,
    InvalidAssignmentError,
    PeerRanker,
    RequestNotFoundError,
    ResponseHistory,
    SubmitResponseInput,
)


# =============================================================================
# HELPERS
# =============================================================================


async def create_cycle(session, clock, name="Q2 Peer Review", cycle_type=CycleType.PEER, days=14):
    return await CycleManager(session, clock).create_cycle(
        CreateCycleInput(
            name=name,
            cycle_type=cycle_type,
            start_date=clock.now(),
            end_date=clock.now() + timedelta(days=days),
        )
    )


async def collaborate(session, clock, employee, peers_with_counts):
    """Give ``employee`` chat history with each peer, then rank everyone."""
    ledger = InteractionLedger(session, clock)
    for peer, count in peers_with_counts:
        await ledger.record_interaction(employee.id, peer.id, InteractionType.CHAT, count=count)
    await PeerRanker(session, clock).rank_all_peers()


async def give_feedback(session, clock, requester, provider, days_ago):
    """Record a completed response from ``provider`` to ``requester`` in an older cycle."""
    past = FrozenClock(clock.now() - timedelta(days=days_ago))
    cycle = await create_cycle(session, past, name=f"Past cycle {days_ago}d", days=1)
    request = FeedbackRequest(
        requester_id=requester.id,
        provider_id=provider.id,
        cycle_id=cycle.id,
        request_type=RequestType.PEER,
        status=RequestStatus.PENDING,
        assigned_at=past.now(),
        due_date=cycle.end_date,
    )
    session.add(request)
    await session.flush()

    await ResponseHistory(session, past).submit_response(
        SubmitResponseInput(
            request_id=request.id,
            requester_id=requester.id,
            provider_id=provider.id,
            overall_rating=4,
        )
    )
    await CycleManager(session, past).complete_cycle(cycle.id)


async def count_requests(session, cycle_id) -> int:
    return await session.scalar(
        select(func.count(FeedbackRequest.id)).where(FeedbackRequest.cycle_id == cycle_id)
    )


# =============================================================================
# TEST: PEER ASSIGNMENT
# =============================================================================


class TestPeerAssignment:
    """Tests for assigning peer requests from rankings."""

    async def test_assigns_top_two_peers(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        make_employee,
    ):
        a = await make_employee()
        b, c, d = [await make_employee() for _ in range(3)]
        await collaborate(session, clock, a, [(b, 9), (c, 5), (d, 1)])
        cycle = await create_cycle(session, clock)

        result = await FeedbackAssigner(session, clock).assign_feedback_requests(
            cycle.id, peers_per_employee=2
        )

        mine = [r for r in result.created if r.requester_id == a.id]
        assert [r.provider_id for r in mine] == [b.id, c.id]
        assert all(r.request_type == RequestType.PEER for r in mine)
        assert all(r.status == RequestStatus.PENDING for r in mine)
        assert all(r.due_date == cycle.end_date for r in mine)
        assert result.employees_processed == 4
        assert result.failed == []

    async def test_rerun_creates_nothing(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        make_employee,
    ):
        a = await make_employee()
        b, c, d = [await make_employee() for _ in range(3)]
        await collaborate(session, clock, a, [(b, 9), (c, 5), (d, 1)])
        cycle = await create_cycle(session, clock)
        assigner = FeedbackAssigner(session, clock)

        manager = CycleManager(session, clock)

        first = await assigner.assign_feedback_requests(cycle.id)
        total = await count_requests(session, cycle.id)
        stats_before = await manager.get_cycle_stats(cycle.id)
        second = await assigner.assign_feedback_requests(cycle.id)

        assert first.created_count == total
        assert second.created_count == 0
        assert second.skipped == total
        assert await count_requests(session, cycle.id) == total
        assert await manager.get_cycle_stats(cycle.id) == stats_before

    async def test_fewer_candidates_than_requested(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        make_employee,
    ):
        """An employee with one collaborator gets one request, not an error."""
        a = await make_employee()
        b = await make_employee()
        loner = await make_employee()
        await collaborate(session, clock, a, [(b, 3)])
        cycle = await create_cycle(session, clock)

        result = await FeedbackAssigner(session, clock).assign_feedback_requests(
            cycle.id, peers_per_employee=3
        )

        assert [(r.requester_id, r.provider_id) for r in result.created] == [
            (a.id, b.id),
            (b.id, a.id),
        ]
        assert all(r.requester_id != loner.id for r in result.created)

    async def test_never_assigns_self(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        make_employee,
    ):
        a = await make_employee()
        b = await make_employee()
        await collaborate(session, clock, a, [(b, 3)])
        cycle = await create_cycle(session, clock, cycle_type=CycleType.FULL_360)

        result = await FeedbackAssigner(session, clock).assign_feedback_requests(
            cycle.id, include_360=True
        )
        assert all(r.requester_id != r.provider_id for r in result.created)

    async def test_newer_rankings_fill_gaps_on_rerun(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        make_employee,
    ):
        a = await make_employee()
        b = await make_employee()
        c = await make_employee()
        await collaborate(session, clock, a, [(b, 3)])
        cycle = await create_cycle(session, clock)
        assigner = FeedbackAssigner(session, clock)
        await assigner.assign_feedback_requests(cycle.id)

        await collaborate(session, clock, a, [(c, 1)])
        second = await assigner.assign_feedback_requests(cycle.id)

        assert (a.id, c.id) in [(r.requester_id, r.provider_id) for r in second.created]


# =============================================================================
# TEST: RECENCY EXCLUSION
# =============================================================================


class TestRecencyExclusion:
    """Providers who recently gave the requester feedback are skipped."""

    async def test_recent_provider_skipped(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        make_employee,
    ):
        a = await make_employee()
        b, c, d = [await make_employee() for _ in range(3)]
        await collaborate(session, clock, a, [(b, 9), (c, 5), (d, 1)])
        await give_feedback(session, clock, requester=a, provider=b, days_ago=10)
        cycle = await create_cycle(session, clock)

        result = await FeedbackAssigner(session, clock).assign_feedback_requests(cycle.id)

        mine = [r.provider_id for r in result.created if r.requester_id == a.id]
        assert mine == [c.id, d.id]

    async def test_old_feedback_does_not_exclude(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        make_employee,
    ):
        a = await make_employee()
        b, c, d = [await make_employee() for _ in range(3)]
        await collaborate(session, clock, a, [(b, 9), (c, 5), (d, 1)])
        await give_feedback(session, clock, requester=a, provider=b, days_ago=45)
        cycle = await create_cycle(session, clock)

        result = await FeedbackAssigner(session, clock).assign_feedback_requests(cycle.id)

        mine = [r.provider_id for r in result.created if r.requester_id == a.id]
        assert mine == [b.id, c.id]


# =============================================================================
# TEST: 360 ASSIGNMENT
# =============================================================================


class Test360Assignment:
    """Manager and upward requests."""

    async def test_manager_and_upward_requests(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        make_employee,
    ):
        manager = await make_employee("Manager", is_manager=True)
        r1 = await make_employee("Report 1", manager=manager)
        r2 = await make_employee("Report 2", manager=manager)
        cycle = await create_cycle(session, clock, cycle_type=CycleType.FULL_360)

        result = await FeedbackAssigner(session, clock).assign_feedback_requests(
            cycle.id, include_360=True
        )

        pairs = {(r.requester_id, r.provider_id, r.request_type) for r in result.created}
        assert pairs == {
            (r1.id, manager.id, RequestType.MANAGER),
            (r2.id, manager.id, RequestType.MANAGER),
            (manager.id, r1.id, RequestType.UPWARD),
            (manager.id, r2.id, RequestType.UPWARD),
        }

    async def test_peer_request_wins_over_manager_duplicate(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        make_employee,
    ):
        """A manager already picked as a peer is not asked twice."""
        manager = await make_employee("Manager", is_manager=True)
        report = await make_employee("Report", manager=manager)
        await collaborate(session, clock, report, [(manager, 5)])
        cycle = await create_cycle(session, clock, cycle_type=CycleType.FULL_360)

        result = await FeedbackAssigner(session, clock).assign_feedback_requests(
            cycle.id, include_360=True
        )

        report_requests = [r for r in result.created if r.requester_id == report.id]
        assert [(r.provider_id, r.request_type) for r in report_requests] == [
            (manager.id, RequestType.PEER)
        ]
        assert result.skipped >= 1

    async def test_no_360_requests_without_flag(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        make_employee,
    ):
        manager = await make_employee("Manager", is_manager=True)
        await make_employee("Report", manager=manager)
        cycle = await create_cycle(session, clock)

        result = await FeedbackAssigner(session, clock).assign_feedback_requests(cycle.id)
        assert result.created == []


# =============================================================================
# TEST: LIFECYCLE & FAILURES
# =============================================================================


class TestAssignmentGuards:
    """Cycle state checks and partial failures."""

    async def test_unknown_cycle(self, session: AsyncSession, clock: FrozenClock):
        from uuid import uuid4

        with pytest.raises(CycleNotFoundError):
            await FeedbackAssigner(session, clock).assign_feedback_requests(uuid4())

    async def test_closed_cycle_rejected(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        make_employee,
    ):
        a = await make_employee()
        b = await make_employee()
        await collaborate(session, clock, a, [(b, 2)])
        cycle = await create_cycle(session, clock)
        await CycleManager(session, clock).archive_cycle(cycle.id)

        with pytest.raises(CycleClosedError):
            await FeedbackAssigner(session, clock).assign_feedback_requests(cycle.id)
        assert await count_requests(session, cycle.id) == 0

    @pytest.mark.parametrize("peers", [0, -1])
    async def test_peers_per_employee_must_be_positive(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        make_employee,
        peers,
    ):
        """A negative count must not slice candidates from the end of the list."""
        a = await make_employee()
        others = [await make_employee() for _ in range(5)]
        await collaborate(session, clock, a, [(p, 5 - i) for i, p in enumerate(others)])
        cycle = await create_cycle(session, clock)

        with pytest.raises(InvalidAssignmentError):
            await FeedbackAssigner(session, clock).assign_feedback_requests(
                cycle.id, peers_per_employee=peers
            )
        assert await count_requests(session, cycle.id) == 0

    async def test_one_failure_does_not_abort_batch(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        make_employee,
        monkeypatch,
    ):
        a = await make_employee()
        b = await make_employee()
        c = await make_employee()
        await collaborate(session, clock, a, [(b, 2), (c, 1)])
        cycle = await create_cycle(session, clock)

        assigner = FeedbackAssigner(session, clock)
        original = assigner._assign_for_employee

        async def flaky_assign(node, **kwargs):
            if node.id == b.id:
                raise OperationalError("INSERT", {}, Exception("database is locked"))
            return await original(node=node, **kwargs)

        monkeypatch.setattr(assigner, "_assign_for_employee", flaky_assign)

        result = await assigner.assign_feedback_requests(cycle.id)

        assert [f.employee_id for f in result.failed] == [b.id]
        assert {r.requester_id for r in result.created} == {a.id, c.id}
        assert result.employees_processed == 3


# =============================================================================
# TEST: REQUEST ACCESSORS
# =============================================================================


class TestRequestAccessors:
    """Reading and updating individual requests."""

    async def test_pending_and_sent_requests(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        make_employee,
    ):
        a = await make_employee()
        b = await make_employee()
        await collaborate(session, clock, a, [(b, 2)])
        cycle = await create_cycle(session, clock)
        assigner = FeedbackAssigner(session, clock)
        await assigner.assign_feedback_requests(cycle.id)

        pending = await assigner.get_pending_requests_for(b.id)
        assert [(r.requester_id, r.provider_id) for r in pending] == [(a.id, b.id)]
        assert pending[0].requester.name == a.name
        assert pending[0].cycle.name == cycle.name

        sent = await assigner.get_requests_from(a.id, cycle_id=cycle.id)
        assert [r.provider_id for r in sent] == [b.id]

    async def test_update_request_status(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        make_employee,
    ):
        a = await make_employee()
        b = await make_employee()
        await collaborate(session, clock, a, [(b, 2)])
        cycle = await create_cycle(session, clock)
        assigner = FeedbackAssigner(session, clock)
        result = await assigner.assign_feedback_requests(cycle.id)

        request = await assigner.update_request_status(
            result.created[0].id, RequestStatus.IN_PROGRESS
        )
        assert request.status == RequestStatus.IN_PROGRESS
        assert request.completed_at is None

        with pytest.raises(RequestNotFoundError):
            await assigner.update_request_status(9999, RequestStatus.COMPLETED)

    async def test_reopening_clears_completed_at(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        make_employee,
    ):
        a = await make_employee()
        b = await make_employee()
        await collaborate(session, clock, a, [(b, 2)])
        cycle = await create_cycle(session, clock)
        assigner = FeedbackAssigner(session, clock)
        result = await assigner.assign_feedback_requests(cycle.id)
        request_id = result.created[0].id

        completed = await assigner.update_request_status(request_id, RequestStatus.COMPLETED)
        assert completed.completed_at == clock.now()

        reopened = await assigner.update_request_status(request_id, RequestStatus.IN_PROGRESS)
        assert reopened.status == RequestStatus.IN_PROGRESS
        assert reopened.completed_at is None

    async def test_mark_overdue_requests(
        self,
        session: AsyncSession,
        clock: FrozenClock,
        make_employee,
    ):
        a = await make_employee()
        b = await make_employee()
        await collaborate(session, clock, a, [(b, 2)])
        cycle = await create_cycle(session, clock, days=7)
        assigner = FeedbackAssigner(session, clock)
        await assigner.assign_feedback_requests(cycle.id)

        # Due in 7 days; still inside the grace period at day 8
        clock.advance(days=8)
        assert await assigner.mark_overdue_requests(grace_days=2) == 0

        clock.advance(days=1)
        assert await assigner.mark_overdue_requests(grace_days=2) == 2

        overdue = await session.scalar(
            select(func.count(FeedbackRequest.id)).where(
                FeedbackRequest.status == RequestStatus.OVERDUE
            )
        )
        assert overdue == 2
