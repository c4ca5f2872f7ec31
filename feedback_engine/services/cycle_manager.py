"""
Cycle Manager: feedback cycle creation, statistics and closure.

State machine:
    active -> completed   (threshold reached or end date long past)
    active -> archived    (explicit administrative action)

``completed`` and ``archived`` are terminal. The periodic poll lives outside
this module; it only exposes the closure predicate and the transitions.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, SystemClock, ensure_utc
from ..models import (
    CycleStatus,
    CycleType,
    FeedbackCycle,
    FeedbackRequest,
    RequestStatus,
)
from .exceptions import CycleNotFoundError, InvalidCycleError, InvalidTransitionError

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass
class ClosureConfig:
    """When an active cycle becomes eligible for completion."""

    # Completion rate (percent) at which a cycle closes
    completion_threshold: float = 90.0

    # Days after end_date at which a cycle closes regardless of completion
    close_after_days: int = 7


DEFAULT_CONFIG = ClosureConfig()
DEFAULT_PEERS_PER_EMPLOYEE = 2

ALLOWED_TRANSITIONS: dict[CycleStatus, set[CycleStatus]] = {
    CycleStatus.ACTIVE: {CycleStatus.COMPLETED, CycleStatus.ARCHIVED},
    CycleStatus.COMPLETED: set(),
    CycleStatus.ARCHIVED: set(),
}


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class CreateCycleInput:
    """Input for creating a new feedback cycle."""
    name: str
    start_date: datetime
    end_date: datetime
    cycle_type: CycleType = CycleType.PEER
    config: dict | None = None  # peers_per_employee, include_manager, include_reports, auto_assign
    created_by: int | None = None


@dataclass(frozen=True)
class AssignmentOptions:
    """Assignment policy derived from a cycle's type and config."""
    peers_per_employee: int
    include_360: bool
    auto_assign: bool


@dataclass(frozen=True)
class CycleStats:
    """Request counts for a cycle. ``completion_rate`` is None for empty cycles."""
    cycle_id: UUID
    total: int
    completed: int
    pending: int
    overdue: int
    completion_rate: float | None


@dataclass(frozen=True)
class RequestCounts:
    """Request totals by status over any slice of feedback_requests."""
    total: int
    completed: int
    pending: int
    overdue: int

    @property
    def completion_rate(self) -> float | None:
        return completion_rate(self.completed, self.total)


def completion_rate(completed: int, total: int) -> float | None:
    """Percentage of completed requests, rounded to 2 decimals."""
    if total == 0:
        return None
    return round(completed / total * 100, 2)


def assignment_options(
    cycle: FeedbackCycle,
    default_peers: int = DEFAULT_PEERS_PER_EMPLOYEE,
) -> AssignmentOptions:
    config = cycle.config or {}
    return AssignmentOptions(
        peers_per_employee=int(config.get("peers_per_employee") or default_peers),
        include_360=(
            cycle.cycle_type == CycleType.FULL_360
            or bool(config.get("include_manager"))
            or bool(config.get("include_reports"))
        ),
        auto_assign=config.get("auto_assign", True) is not False,
    )


async def count_requests(session: AsyncSession, *criteria) -> RequestCounts:
    """Count requests by status, restricted by optional WHERE criteria."""

    def _count(status: RequestStatus):
        return func.coalesce(
            func.sum(case((FeedbackRequest.status == status, 1), else_=0)), 0
        )

    query = select(
        func.count(FeedbackRequest.id).label("total"),
        _count(RequestStatus.COMPLETED).label("completed"),
        _count(RequestStatus.PENDING).label("pending"),
        _count(RequestStatus.OVERDUE).label("overdue"),
    )
    if criteria:
        query = query.where(*criteria)

    row = (await session.execute(query)).one()
    return RequestCounts(
        total=int(row.total or 0),
        completed=int(row.completed or 0),
        pending=int(row.pending or 0),
        overdue=int(row.overdue or 0),
    )


def should_complete(
    cycle: FeedbackCycle,
    stats: CycleStats,
    now: datetime,
    config: ClosureConfig = DEFAULT_CONFIG,
) -> bool:
    """True when an active cycle has hit the completion threshold or run long."""
    if cycle.status != CycleStatus.ACTIVE:
        return False

    if stats.completion_rate is not None and stats.completion_rate >= config.completion_threshold:
        return True

    overdue_by = ensure_utc(now) - ensure_utc(cycle.end_date)
    return overdue_by >= timedelta(days=config.close_after_days)


# =============================================================================
# CYCLE MANAGER
# =============================================================================


class CycleManager:
    """Creates cycles, reports their progress and drives their closure."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock | None = None,
        config: ClosureConfig = DEFAULT_CONFIG,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config

    async def create_cycle(self, input: CreateCycleInput) -> FeedbackCycle:
        """Create a cycle in the ``active`` state."""
        if not input.name or not input.name.strip():
            raise InvalidCycleError("Cycle name is required")
        if ensure_utc(input.end_date) < ensure_utc(input.start_date):
            raise InvalidCycleError("Cycle end_date must not precede start_date")

        config = dict(input.config or {})
        peers = config.get("peers_per_employee")
        if peers is not None and (not isinstance(peers, int) or peers < 1):
            raise InvalidCycleError("peers_per_employee must be a positive integer")

        cycle = FeedbackCycle(
            name=input.name.strip(),
            cycle_type=input.cycle_type,
            start_date=ensure_utc(input.start_date),
            end_date=ensure_utc(input.end_date),
            status=CycleStatus.ACTIVE,
            config=config,
            created_by=input.created_by,
            created_at=self._clock.now(),
            closed_at=None,
        )
        self._session.add(cycle)
        await self._session.flush()

        logger.info(f"Created {cycle.cycle_type.value} cycle {cycle.id} ({cycle.name})")
        return cycle

    async def get_cycle(self, cycle_id: UUID) -> FeedbackCycle:
        cycle = await self._session.get(FeedbackCycle, cycle_id)
        if cycle is None:
            raise CycleNotFoundError(f"Feedback cycle {cycle_id} not found")
        return cycle

    async def get_active_cycles(self) -> list[FeedbackCycle]:
        result = await self._session.execute(
            select(FeedbackCycle)
            .where(FeedbackCycle.status == CycleStatus.ACTIVE)
            .order_by(FeedbackCycle.created_at.desc(), FeedbackCycle.name.asc())
        )
        return list(result.scalars().all())

    async def get_cycle_stats(self, cycle_id: UUID) -> CycleStats:
        await self.get_cycle(cycle_id)
        counts = await count_requests(
            self._session, FeedbackRequest.cycle_id == cycle_id
        )
        return CycleStats(
            cycle_id=cycle_id,
            total=counts.total,
            completed=counts.completed,
            pending=counts.pending,
            overdue=counts.overdue,
            completion_rate=counts.completion_rate,
        )

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    async def complete_cycle(self, cycle_id: UUID) -> FeedbackCycle:
        return await self._transition(cycle_id, CycleStatus.COMPLETED)

    async def archive_cycle(self, cycle_id: UUID) -> FeedbackCycle:
        return await self._transition(cycle_id, CycleStatus.ARCHIVED)

    async def close_eligible_cycles(self) -> list[UUID]:
        """Complete every active cycle the closure predicate accepts."""
        now = self._clock.now()
        closed = []
        for cycle in await self.get_active_cycles():
            stats = await self.get_cycle_stats(cycle.id)
            if should_complete(cycle, stats, now, self._config):
                await self._transition(cycle.id, CycleStatus.COMPLETED)
                closed.append(cycle.id)

        if closed:
            logger.info(f"Auto-closed {len(closed)} feedback cycles")
        return closed

    async def _transition(self, cycle_id: UUID, target: CycleStatus) -> FeedbackCycle:
        cycle = await self.get_cycle(cycle_id)

        if target not in ALLOWED_TRANSITIONS[cycle.status]:
            raise InvalidTransitionError(
                f"Cannot move cycle {cycle_id} from {cycle.status.value} to {target.value}"
            )

        cycle.status = target
        cycle.closed_at = self._clock.now()
        await self._session.flush()

        logger.info(f"Cycle {cycle_id} ({cycle.name}) is now {target.value}")
        return cycle
