"""
Peer Ranker: turns the interaction ledger into per-employee peer rankings.

Score per peer, over every interaction type observed with that peer:

    score = sum(count * weight(type) + minutes / 10) * recency_multiplier

The recency multiplier comes from the single most recent interaction with the
peer (any type) and decays linearly over 90 days down to a floor of 0.5, so
stale collaborators are demoted but never dropped.

Rankings are a materialized view: recomputing an employee deletes and
re-inserts that employee's whole set inside one SAVEPOINT.
"""

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.clock import Clock, SystemClock, ensure_utc
from ..core.database import get_session_context
from ..models import Employee, PeerRanking
from .exceptions import FeedbackEngineError
from .interaction_ledger import InteractionAggregate, InteractionLedger
from .org_graph import OrganizationGraph

logger = logging.getLogger(__name__)


# =============================================================================
# SCORING
# =============================================================================

INTERACTION_WEIGHTS: dict[str, float] = {
    "chat": 1,
    "meeting": 3,
    "task": 5,
    "file": 2,
}
DEFAULT_WEIGHT = 1
MINUTES_DIVISOR = 10
RECENCY_WINDOW_DAYS = 90
RECENCY_FLOOR = 0.5


def interaction_weight(interaction_type: str) -> float:
    """Weight of one interaction of the given type; unknown types count as 1."""
    return INTERACTION_WEIGHTS.get(interaction_type, DEFAULT_WEIGHT)


def recency_multiplier(last_interaction_at: datetime, now: datetime) -> float:
    """Linear decay over the recency window, bounded to [0.5, 1.0]."""
    elapsed = ensure_utc(now) - ensure_utc(last_interaction_at)
    days_since = elapsed.total_seconds() / 86400
    return min(1.0, max(RECENCY_FLOOR, 1 - days_since / RECENCY_WINDOW_DAYS))


def calculate_collaboration_score(
    aggregates: Sequence[InteractionAggregate],
    now: datetime,
) -> float:
    """Collaboration score for one peer from all its interaction aggregates."""
    if not aggregates:
        return 0.0

    score = 0.0
    for aggregate in aggregates:
        score += (
            aggregate.count * interaction_weight(aggregate.interaction_type)
            + aggregate.minutes / MINUTES_DIVISOR
        )

    most_recent = max(ensure_utc(a.last_at) for a in aggregates)
    return score * recency_multiplier(most_recent, now)


def rank_scores(scores: dict[int, float]) -> list[tuple[int, float, int]]:
    """
    Order peers by score descending, then peer id ascending.

    Returns ``(peer_id, score, rank_position)`` with dense positions from 1.
    """
    ordered = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
    return [
        (peer_id, score, position)
        for position, (peer_id, score) in enumerate(ordered, start=1)
    ]


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass(frozen=True)
class RankedPeer:
    """One row of an employee's ranking, optionally with peer display fields."""
    employee_id: int
    peer_id: int
    collaboration_score: float
    rank_position: int
    calculated_at: datetime
    peer_name: str | None = None
    peer_email: str | None = None
    peer_department: str | None = None
    peer_role: str | None = None


@dataclass(frozen=True)
class BatchFailure:
    """An employee whose batch step failed, with the error text."""
    employee_id: int
    error: str


@dataclass
class RankingBatchResult:
    """Outcome of recomputing rankings for many employees."""
    employees_processed: int = 0
    rankings_written: int = 0
    failed: list[BatchFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return self.employees_processed - len(self.failed)


@dataclass(frozen=True)
class NetworkStats:
    """Shape of the whole ranking table."""
    total_employees: int
    total_peers: int
    avg_collaboration_score: float | None
    max_collaboration_score: float | None
    min_collaboration_score: float | None


# =============================================================================
# PEER RANKER
# =============================================================================


class PeerRanker:
    """Computes, persists and reads peer rankings."""

    def __init__(self, session: AsyncSession, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._ledger = InteractionLedger(session, self._clock)
        self._graph = OrganizationGraph(session)

    async def rank_peers(self, employee_id: int) -> list[RankedPeer]:
        """Recompute and persist the full ranking set for one employee."""
        await self._graph.get_employee(employee_id)
        return await self._rank_known_employee(employee_id)

    async def rank_all_peers(self) -> RankingBatchResult:
        """
        Recompute rankings for every employee.

        Each employee runs in its own SAVEPOINT; a storage failure is logged
        and collected and the batch moves on.
        """
        employees = await self._graph.list_employees()
        logger.info(f"Ranking peers for {len(employees)} employees")

        result = RankingBatchResult()
        for node in employees:
            result.employees_processed += 1
            try:
                async with self._session.begin_nested():
                    rankings = await self._rank_known_employee(node.id)
                result.rankings_written += len(rankings)
            except SQLAlchemyError as e:
                logger.error(f"Ranking failed for employee {node.id}: {e}")
                result.failed.append(BatchFailure(employee_id=node.id, error=str(e)))

        logger.info(
            f"Peer ranking completed: {result.succeeded} succeeded, "
            f"{len(result.failed)} failed, {result.rankings_written} rows"
        )
        return result

    async def ranked_peers(self, employee_id: int, limit: int = 10) -> list[RankedPeer]:
        """Top ``limit`` stored rankings. Does not recompute."""
        query = (
            select(PeerRanking, Employee)
            .join(Employee, PeerRanking.peer_id == Employee.id)
            .where(PeerRanking.employee_id == employee_id)
            .order_by(PeerRanking.rank_position.asc())
            .limit(limit)
        )
        result = await self._session.execute(query)

        return [
            RankedPeer(
                employee_id=ranking.employee_id,
                peer_id=ranking.peer_id,
                collaboration_score=ranking.collaboration_score,
                rank_position=ranking.rank_position,
                calculated_at=ensure_utc(ranking.calculated_at),
                peer_name=peer.name,
                peer_email=peer.email,
                peer_department=peer.department,
                peer_role=peer.role,
            )
            for ranking, peer in result.all()
        ]

    async def network_stats(self) -> NetworkStats:
        result = await self._session.execute(
            select(
                func.count(func.distinct(PeerRanking.employee_id)).label("total_employees"),
                func.count(func.distinct(PeerRanking.peer_id)).label("total_peers"),
                func.avg(PeerRanking.collaboration_score).label("avg_score"),
                func.max(PeerRanking.collaboration_score).label("max_score"),
                func.min(PeerRanking.collaboration_score).label("min_score"),
            )
        )
        row = result.one()

        def _as_float(value) -> float | None:
            return round(float(value), 2) if value is not None else None

        return NetworkStats(
            total_employees=int(row.total_employees or 0),
            total_peers=int(row.total_peers or 0),
            avg_collaboration_score=_as_float(row.avg_score),
            max_collaboration_score=_as_float(row.max_score),
            min_collaboration_score=_as_float(row.min_score),
        )

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    async def _rank_known_employee(self, employee_id: int) -> list[RankedPeer]:
        now = self._clock.now()
        aggregates = await self._ledger.interactions_for(employee_id)

        by_peer: dict[int, list[InteractionAggregate]] = {}
        for aggregate in aggregates:
            if aggregate.peer_id == employee_id:
                continue
            by_peer.setdefault(aggregate.peer_id, []).append(aggregate)

        scores = {
            peer_id: calculate_collaboration_score(rows, now)
            for peer_id, rows in by_peer.items()
        }
        ordered = rank_scores(scores)

        await self._replace_rankings(employee_id, ordered, now)

        return [
            RankedPeer(
                employee_id=employee_id,
                peer_id=peer_id,
                collaboration_score=score,
                rank_position=position,
                calculated_at=now,
            )
            for peer_id, score, position in ordered
        ]

    async def _replace_rankings(
        self,
        employee_id: int,
        ordered: Iterable[tuple[int, float, int]],
        calculated_at: datetime,
    ) -> None:
        """Delete-then-insert as one unit."""
        async with self._session.begin_nested():
            await self._session.execute(
                delete(PeerRanking).where(PeerRanking.employee_id == employee_id)
            )
            self._session.add_all([
                PeerRanking(
                    employee_id=employee_id,
                    peer_id=peer_id,
                    collaboration_score=score,
                    rank_position=position,
                    calculated_at=calculated_at,
                )
                for peer_id, score, position in ordered
            ])
            await self._session.flush()


async def rank_all_peers_concurrently(
    session_factory: async_sessionmaker[AsyncSession],
    clock: Clock | None = None,
    concurrency: int = 8,
) -> RankingBatchResult:
    """
    Recompute every employee's ranking on independent sessions.

    Employees share no ranking state, so each one commits on its own
    connection; at most ``concurrency`` run at once.
    """
    clock = clock or SystemClock()

    async with get_session_context(session_factory) as session:
        employees = await OrganizationGraph(session).list_employees()

    semaphore = asyncio.Semaphore(concurrency)

    async def _rank_one(employee_id: int) -> tuple[int, int, str | None]:
        async with semaphore:
            try:
                async with get_session_context(session_factory) as session:
                    rankings = await PeerRanker(session, clock).rank_peers(employee_id)
                return employee_id, len(rankings), None
            except (SQLAlchemyError, FeedbackEngineError) as e:
                # Includes employees removed after the listing
                logger.error(f"Ranking failed for employee {employee_id}: {e}")
                return employee_id, 0, str(e)

    outcomes = await asyncio.gather(*(_rank_one(node.id) for node in employees))

    result = RankingBatchResult(employees_processed=len(outcomes))
    for employee_id, written, error in outcomes:
        result.rankings_written += written
        if error is not None:
            result.failed.append(BatchFailure(employee_id=employee_id, error=error))

    logger.info(
        f"Concurrent peer ranking completed: {result.succeeded} succeeded, "
        f"{len(result.failed)} failed"
    )
    return result
