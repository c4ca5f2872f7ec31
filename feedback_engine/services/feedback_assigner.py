"""
Feedback Assigner: turns a cycle and the current peer rankings into requests.

Guarantees:
1. Every employee is visited exactly once per run
2. No (requester, provider, cycle) tuple is ever created twice, so re-running
   a cycle's assignment creates nothing new
3. No self-assignment
4. One employee's storage failure never aborts the rest of the batch

The engine never re-ranks mid-run; callers refresh rankings first so every
employee is assigned from the same snapshot.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.clock import Clock, SystemClock
from ..models import (
    CycleStatus,
    FeedbackCycle,
    FeedbackRequest,
    RequestStatus,
    RequestType,
)
from .exceptions import (
    CycleClosedError,
    CycleNotFoundError,
    InvalidAssignmentError,
    RequestNotFoundError,
)
from .org_graph import EmployeeNode, OrganizationGraph
from .peer_ranker import BatchFailure, PeerRanker
from .responses import ResponseHistory

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass
class AssignmentConfig:
    """Tunables for the assignment policy."""

    # Extra ranked candidates fetched to absorb the recency filter
    candidate_buffer: int = 10

    # Providers who answered the same requester this recently are skipped
    recency_exclusion_days: int = 30


DEFAULT_CONFIG = AssignmentConfig()

_REQUEST_DETAIL = (
    selectinload(FeedbackRequest.requester),
    selectinload(FeedbackRequest.provider),
    selectinload(FeedbackRequest.cycle),
)


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class AssignmentResult:
    """Aggregate outcome of one assignment run."""
    cycle_id: UUID
    created: list[FeedbackRequest] = field(default_factory=list)
    skipped: int = 0
    failed: list[BatchFailure] = field(default_factory=list)
    employees_processed: int = 0

    @property
    def created_count(self) -> int:
        return len(self.created)


@dataclass
class _EmployeeOutcome:
    created: list[FeedbackRequest] = field(default_factory=list)
    skipped: int = 0


# =============================================================================
# FEEDBACK ASSIGNER
# =============================================================================


class FeedbackAssigner:
    """Assigns peer, manager and upward feedback requests for a cycle."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock | None = None,
        config: AssignmentConfig = DEFAULT_CONFIG,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config
        self._graph = OrganizationGraph(session)
        self._ranker = PeerRanker(session, self._clock)
        self._history = ResponseHistory(session, self._clock)

    # =========================================================================
    # ASSIGNMENT
    # =========================================================================

    async def assign_feedback_requests(
        self,
        cycle_id: UUID,
        peers_per_employee: int = 2,
        include_360: bool = False,
    ) -> AssignmentResult:
        """
        Create the cycle's feedback requests from stored rankings.

        Per employee:
        1. Top ``peers_per_employee + buffer`` ranked peers
        2. Drop peers who gave this employee feedback in the exclusion window
        3. Keep the first ``peers_per_employee`` in rank order
        4. Create ``peer`` requests not already assigned
        5. With ``include_360``: ``manager`` request to the employee's manager
           and ``upward`` requests to each direct report (no recency filter)

        Raises InvalidAssignmentError, CycleNotFoundError or CycleClosedError
        before touching anything.
        """
        if peers_per_employee < 1:
            raise InvalidAssignmentError(
                f"peers_per_employee must be at least 1, got {peers_per_employee}"
            )

        cycle = await self._session.get(FeedbackCycle, cycle_id)
        if cycle is None:
            raise CycleNotFoundError(f"Feedback cycle {cycle_id} not found")
        if cycle.status != CycleStatus.ACTIVE:
            raise CycleClosedError(
                f"Feedback cycle {cycle_id} is {cycle.status.value}; no new assignments"
            )

        employees = await self._graph.list_employees()
        reports_by_manager: dict[int, list[int]] = {}
        for node in employees:
            if node.manager_id is not None:
                reports_by_manager.setdefault(node.manager_id, []).append(node.id)

        since = self._clock.now() - timedelta(days=self._config.recency_exclusion_days)
        result = AssignmentResult(cycle_id=cycle_id)

        for node in employees:
            result.employees_processed += 1
            try:
                async with self._session.begin_nested():
                    outcome = await self._assign_for_employee(
                        node=node,
                        cycle=cycle,
                        peers_per_employee=peers_per_employee,
                        include_360=include_360,
                        reports=reports_by_manager.get(node.id, []),
                        since=since,
                    )
            except SQLAlchemyError as e:
                logger.error(f"Assignment failed for employee {node.id} in cycle {cycle_id}: {e}")
                result.failed.append(BatchFailure(employee_id=node.id, error=str(e)))
                continue

            result.created.extend(outcome.created)
            result.skipped += outcome.skipped

        logger.info(
            f"Created {result.created_count} feedback requests for cycle {cycle_id} "
            f"({result.skipped} skipped, {len(result.failed)} failed)"
        )
        return result

    # =========================================================================
    # REQUEST ACCESSORS
    # =========================================================================

    async def get_request(self, request_id: int) -> FeedbackRequest:
        result = await self._session.execute(
            select(FeedbackRequest)
            .where(FeedbackRequest.id == request_id)
            .options(*_REQUEST_DETAIL)
        )
        request = result.scalar_one_or_none()
        if request is None:
            raise RequestNotFoundError(f"Feedback request {request_id} not found")
        return request

    async def get_pending_requests_for(self, provider_id: int) -> list[FeedbackRequest]:
        """Pending requests the employee still has to answer, soonest due first."""
        result = await self._session.execute(
            select(FeedbackRequest)
            .where(
                FeedbackRequest.provider_id == provider_id,
                FeedbackRequest.status == RequestStatus.PENDING,
            )
            .options(*_REQUEST_DETAIL)
            .order_by(FeedbackRequest.due_date.asc(), FeedbackRequest.id.asc())
        )
        return list(result.scalars().all())

    async def get_requests_from(
        self,
        requester_id: int,
        cycle_id: UUID | None = None,
    ) -> list[FeedbackRequest]:
        """Requests raised on behalf of ``requester_id`` (who they are waiting on)."""
        query = (
            select(FeedbackRequest)
            .where(FeedbackRequest.requester_id == requester_id)
            .options(*_REQUEST_DETAIL)
            .order_by(FeedbackRequest.due_date.asc(), FeedbackRequest.id.asc())
        )
        if cycle_id is not None:
            query = query.where(FeedbackRequest.cycle_id == cycle_id)

        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def update_request_status(
        self,
        request_id: int,
        status: RequestStatus,
    ) -> FeedbackRequest:
        request = await self._session.get(FeedbackRequest, request_id)
        if request is None:
            raise RequestNotFoundError(f"Feedback request {request_id} not found")

        request.status = status
        if status != RequestStatus.COMPLETED:
            request.completed_at = None
        elif request.completed_at is None:
            request.completed_at = self._clock.now()

        await self._session.flush()
        return request

    async def mark_overdue_requests(self, grace_days: int = 2) -> int:
        """Move pending requests ``grace_days`` past their due date to overdue."""
        cutoff = self._clock.now() - timedelta(days=grace_days)
        result = await self._session.execute(
            update(FeedbackRequest)
            .where(
                FeedbackRequest.status == RequestStatus.PENDING,
                FeedbackRequest.due_date <= cutoff,
            )
            .values(status=RequestStatus.OVERDUE)
            .execution_options(synchronize_session="fetch")
        )
        marked = result.rowcount or 0
        if marked:
            logger.info(f"Marked {marked} feedback requests overdue")
        return marked

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    async def _assign_for_employee(
        self,
        node: EmployeeNode,
        cycle: FeedbackCycle,
        peers_per_employee: int,
        include_360: bool,
        reports: list[int],
        since: datetime,
    ) -> _EmployeeOutcome:
        outcome = _EmployeeOutcome()

        candidates = await self._ranker.ranked_peers(
            node.id, peers_per_employee + self._config.candidate_buffer
        )
        recent_providers = await self._history.recent_providers_of(node.id, since)
        available = [
            c for c in candidates
            if c.peer_id not in recent_providers and c.peer_id != node.id
        ]

        for candidate in available[:peers_per_employee]:
            await self._create_if_absent(
                outcome, node.id, candidate.peer_id, cycle, RequestType.PEER
            )

        if include_360:
            if node.manager_id is not None:
                await self._create_if_absent(
                    outcome, node.id, node.manager_id, cycle, RequestType.MANAGER
                )
            if node.is_manager:
                for report_id in reports:
                    await self._create_if_absent(
                        outcome, node.id, report_id, cycle, RequestType.UPWARD
                    )

        return outcome

    async def _create_if_absent(
        self,
        outcome: _EmployeeOutcome,
        requester_id: int,
        provider_id: int,
        cycle: FeedbackCycle,
        request_type: RequestType,
    ) -> None:
        if requester_id == provider_id:
            return

        if await self._assignment_exists(requester_id, provider_id, cycle.id):
            outcome.skipped += 1
            return

        request = FeedbackRequest(
            requester_id=requester_id,
            provider_id=provider_id,
            cycle_id=cycle.id,
            request_type=request_type,
            status=RequestStatus.PENDING,
            assigned_at=self._clock.now(),
            due_date=cycle.end_date,
            completed_at=None,
            reminder_count=0,
            last_reminder_at=None,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(request)
                await self._session.flush()
        except IntegrityError:
            # Lost a race with a concurrent run; the other row stands
            logger.info(
                f"Assignment {requester_id}->{provider_id} already exists in cycle {cycle.id}"
            )
            outcome.skipped += 1
            return

        outcome.created.append(request)

    async def _assignment_exists(
        self,
        requester_id: int,
        provider_id: int,
        cycle_id: UUID,
    ) -> bool:
        result = await self._session.execute(
            select(FeedbackRequest.id).where(
                FeedbackRequest.requester_id == requester_id,
                FeedbackRequest.provider_id == provider_id,
                FeedbackRequest.cycle_id == cycle_id,
            )
        )
        return result.first() is not None
