"""
Feedback Analytics: completion reporting across cycles and teams.

Reuses the cycle statistics aggregation; team figures count the requests a
manager's direct reports owe as providers.
"""

from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Employee, FeedbackCycle, FeedbackRequest
from .cycle_manager import RequestCounts, count_requests
from .exceptions import CycleNotFoundError
from .org_graph import OrganizationGraph

EMPTY_COUNTS = RequestCounts(total=0, completed=0, pending=0, overdue=0)


@dataclass
class MemberCompletion:
    employee: Employee
    counts: RequestCounts


@dataclass
class TeamCompletion:
    """Completion of the feedback a manager's team has been asked to give."""
    manager_id: int
    cycle_id: UUID | None
    team: RequestCounts
    members: list[MemberCompletion] = field(default_factory=list)


class FeedbackAnalytics:
    """Read-only completion reporting."""

    def __init__(self, session: AsyncSession):
        self._session = session
        self._graph = OrganizationGraph(session)

    async def completion_rates(self, cycle_id: UUID | None = None) -> RequestCounts:
        """Request counts across every cycle, or only ``cycle_id``."""
        if cycle_id is None:
            return await count_requests(self._session)

        await self._require_cycle(cycle_id)
        return await count_requests(self._session, FeedbackRequest.cycle_id == cycle_id)

    async def team_completion(
        self,
        manager_id: int,
        cycle_id: UUID | None = None,
    ) -> TeamCompletion:
        """Completion for each direct report of ``manager_id`` and the team overall."""
        await self._graph.get_employee(manager_id)
        criteria = []
        if cycle_id is not None:
            await self._require_cycle(cycle_id)
            criteria.append(FeedbackRequest.cycle_id == cycle_id)

        reports = await self._graph.direct_reports(manager_id)
        if not reports:
            return TeamCompletion(manager_id=manager_id, cycle_id=cycle_id, team=EMPTY_COUNTS)

        team = await count_requests(
            self._session,
            FeedbackRequest.provider_id.in_([e.id for e in reports]),
            *criteria,
        )
        members = [
            MemberCompletion(
                employee=employee,
                counts=await count_requests(
                    self._session, FeedbackRequest.provider_id == employee.id, *criteria
                ),
            )
            for employee in reports
        ]
        return TeamCompletion(
            manager_id=manager_id,
            cycle_id=cycle_id,
            team=team,
            members=members,
        )

    async def _require_cycle(self, cycle_id: UUID) -> None:
        if await self._session.get(FeedbackCycle, cycle_id) is None:
            raise CycleNotFoundError(f"Feedback cycle {cycle_id} not found")
