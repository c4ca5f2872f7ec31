"""
Interaction Ledger: accumulates raw collaboration signals between employees.

Every interaction between A and B is stored twice, once from each side, and
both rows are written in the same SAVEPOINT so a failure leaves neither.
Counters only ever grow. No ranking logic lives here.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, SystemClock, ensure_utc
from ..models import Employee, Interaction, InteractionType
from .exceptions import EmployeeNotFoundError, InvalidInteractionError

logger = logging.getLogger(__name__)


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass(frozen=True)
class InteractionAggregate:
    """Interactions of one type with one peer."""
    peer_id: int
    interaction_type: str
    count: int
    minutes: int
    last_at: datetime


@dataclass(frozen=True)
class PeerCollaboration:
    """All interaction types with one peer folded together."""
    peer_id: int
    peer_name: str
    peer_department: str | None
    peer_role: str | None
    interaction_types: list[str]
    total_interactions: int
    total_minutes: int
    last_interaction_at: datetime


@dataclass(frozen=True)
class CollaborationMetrics:
    """Summary of an employee's collaboration footprint."""
    unique_collaborators: int
    total_interactions: int
    total_minutes: int
    avg_interactions_per_peer: float


# =============================================================================
# INTERACTION LEDGER
# =============================================================================


class InteractionLedger:
    """Symmetric, append-and-accumulate store of interaction counters."""

    def __init__(self, session: AsyncSession, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    async def record_interaction(
        self,
        employee_id: int,
        peer_id: int,
        interaction_type: InteractionType | str,
        count: int = 1,
        minutes: int = 0,
    ) -> None:
        """
        Accumulate ``count`` interactions and ``minutes`` between two employees.

        Both directions are upserted inside one SAVEPOINT.
        """
        if employee_id == peer_id:
            raise InvalidInteractionError("An employee cannot interact with themselves")
        if count < 0 or minutes < 0:
            raise InvalidInteractionError("Interaction count and minutes must be non-negative")

        type_value = (
            interaction_type.value
            if isinstance(interaction_type, InteractionType)
            else str(interaction_type)
        )
        await self._require_employees(employee_id, peer_id)

        now = self._clock.now()
        async with self._session.begin_nested():
            await self._upsert(employee_id, peer_id, type_value, count, minutes, now)
            await self._upsert(peer_id, employee_id, type_value, count, minutes, now)

        logger.debug(
            f"Recorded {count} {type_value} interaction(s), {minutes} min "
            f"between {employee_id} and {peer_id}"
        )

    async def interactions_for(self, employee_id: int) -> list[InteractionAggregate]:
        """Interaction aggregates grouped by peer and type."""
        query = (
            select(
                Interaction.peer_id,
                Interaction.interaction_type,
                func.sum(Interaction.interaction_count).label("count"),
                func.sum(Interaction.total_minutes).label("minutes"),
                func.max(Interaction.last_interaction_at).label("last_at"),
            )
            .where(Interaction.employee_id == employee_id)
            .group_by(Interaction.peer_id, Interaction.interaction_type)
            .order_by(Interaction.peer_id, Interaction.interaction_type)
        )
        result = await self._session.execute(query)

        return [
            InteractionAggregate(
                peer_id=row.peer_id,
                interaction_type=row.interaction_type,
                count=int(row.count or 0),
                minutes=int(row.minutes or 0),
                last_at=ensure_utc(row.last_at),
            )
            for row in result.all()
        ]

    async def collaborations_of(self, employee_id: int) -> list[PeerCollaboration]:
        """Interaction aggregates grouped by peer, most recent first."""
        aggregates = await self.interactions_for(employee_id)
        if not aggregates:
            return []

        by_peer: dict[int, list[InteractionAggregate]] = {}
        for aggregate in aggregates:
            by_peer.setdefault(aggregate.peer_id, []).append(aggregate)

        peers_result = await self._session.execute(
            select(Employee).where(Employee.id.in_(by_peer.keys()))
        )
        peers = {peer.id: peer for peer in peers_result.scalars().all()}

        collaborations = []
        for peer_id, rows in by_peer.items():
            peer = peers.get(peer_id)
            collaborations.append(PeerCollaboration(
                peer_id=peer_id,
                peer_name=peer.name if peer else "",
                peer_department=peer.department if peer else None,
                peer_role=peer.role if peer else None,
                interaction_types=sorted(r.interaction_type for r in rows),
                total_interactions=sum(r.count for r in rows),
                total_minutes=sum(r.minutes for r in rows),
                last_interaction_at=max(r.last_at for r in rows),
            ))

        collaborations.sort(key=lambda c: (-c.last_interaction_at.timestamp(), c.peer_id))
        return collaborations

    async def aggregated_metrics(self, employee_id: int) -> CollaborationMetrics:
        result = await self._session.execute(
            select(
                func.count(func.distinct(Interaction.peer_id)).label("unique_collaborators"),
                func.sum(Interaction.interaction_count).label("total_interactions"),
                func.sum(Interaction.total_minutes).label("total_minutes"),
            ).where(Interaction.employee_id == employee_id)
        )
        row = result.one()

        unique = int(row.unique_collaborators or 0)
        total = int(row.total_interactions or 0)
        return CollaborationMetrics(
            unique_collaborators=unique,
            total_interactions=total,
            total_minutes=int(row.total_minutes or 0),
            avg_interactions_per_peer=round(total / unique, 2) if unique else 0.0,
        )

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    async def _require_employees(self, *employee_ids: int) -> None:
        result = await self._session.execute(
            select(Employee.id).where(Employee.id.in_(employee_ids))
        )
        found = set(result.scalars().all())
        missing = [e for e in employee_ids if e not in found]
        if missing:
            raise EmployeeNotFoundError(f"Employee {missing[0]} not found")

    async def _upsert(
        self,
        employee_id: int,
        peer_id: int,
        interaction_type: str,
        count: int,
        minutes: int,
        now: datetime,
    ) -> None:
        dialect = self._session.get_bind().dialect.name
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert

        stmt = insert(Interaction).values(
            employee_id=employee_id,
            peer_id=peer_id,
            interaction_type=interaction_type,
            interaction_count=count,
            total_minutes=minutes,
            last_interaction_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["employee_id", "peer_id", "interaction_type"],
            set_={
                "interaction_count": Interaction.interaction_count + stmt.excluded.interaction_count,
                "total_minutes": Interaction.total_minutes + stmt.excluded.total_minutes,
                "last_interaction_at": stmt.excluded.last_interaction_at,
            },
        )
        await self._session.execute(stmt)
