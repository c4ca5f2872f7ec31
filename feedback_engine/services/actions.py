"""
Action Service: follow-up items raised from feedback.

A manager (or anyone) assigns an action to an employee, optionally pointing at
the feedback response that prompted it. Completing an action stamps
``completed_at``; moving it back clears the stamp.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.clock import Clock, SystemClock, ensure_utc
from ..models import Action, ActionStatus, FeedbackResponse
from .exceptions import ActionNotFoundError, InvalidActionError
from .org_graph import OrganizationGraph

logger = logging.getLogger(__name__)

_ACTION_DETAIL = (
    selectinload(Action.employee),
    selectinload(Action.assigner),
)


@dataclass
class CreateActionInput:
    """Input for assigning a follow-up action."""
    employee_id: int
    assigned_by: int
    title: str
    action_type: str = "development"
    description: str | None = None
    response_id: int | None = None
    due_date: datetime | None = None


class ActionService:
    """Create, list and progress follow-up actions."""

    def __init__(self, session: AsyncSession, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._graph = OrganizationGraph(session)

    async def create_action(self, input: CreateActionInput) -> Action:
        """
        Assign a follow-up action.

        Both employees must exist; a referenced response must exist and be
        feedback the assignee received.
        """
        title = (input.title or "").strip()
        if not title:
            raise InvalidActionError("Action title is required")

        employee = await self._graph.get_employee(input.employee_id)
        assigner = await self._graph.get_employee(input.assigned_by)

        response = None
        if input.response_id is not None:
            response = await self._session.get(FeedbackResponse, input.response_id)
            if response is None:
                raise InvalidActionError(f"Feedback response {input.response_id} not found")
            if response.requester_id != employee.id:
                raise InvalidActionError(
                    f"Feedback response {input.response_id} was not given to employee {employee.id}"
                )

        action = Action(
            employee_id=employee.id,
            assigned_by=assigner.id,
            response_id=response.id if response else None,
            employee=employee,
            assigner=assigner,
            action_type=input.action_type or "development",
            title=title,
            description=input.description,
            status=ActionStatus.PENDING,
            due_date=ensure_utc(input.due_date) if input.due_date else None,
            completed_at=None,
            created_at=self._clock.now(),
        )
        self._session.add(action)
        await self._session.flush()

        logger.info(
            f"Action {action.id} assigned to employee {employee.id} by {assigner.id}: {title}"
        )
        return action

    async def get_action(self, action_id: int) -> Action:
        result = await self._session.execute(
            select(Action).where(Action.id == action_id).options(*_ACTION_DETAIL)
        )
        action = result.scalar_one_or_none()
        if action is None:
            raise ActionNotFoundError(f"Action {action_id} not found")
        return action

    async def actions_for(
        self,
        employee_id: int,
        status: ActionStatus | None = None,
    ) -> list[Action]:
        """Actions assigned to an employee, newest first."""
        query = (
            select(Action)
            .where(Action.employee_id == employee_id)
            .options(*_ACTION_DETAIL)
            .order_by(Action.created_at.desc(), Action.id.desc())
        )
        if status is not None:
            query = query.where(Action.status == status)

        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def actions_assigned_by(self, assigner_id: int) -> list[Action]:
        result = await self._session.execute(
            select(Action)
            .where(Action.assigned_by == assigner_id)
            .options(*_ACTION_DETAIL)
            .order_by(Action.created_at.desc(), Action.id.desc())
        )
        return list(result.scalars().all())

    async def update_action_status(self, action_id: int, status: ActionStatus) -> Action:
        action = await self.get_action(action_id)

        action.status = status
        if status != ActionStatus.COMPLETED:
            action.completed_at = None
        elif action.completed_at is None:
            action.completed_at = self._clock.now()

        await self._session.flush()
        return action

    async def delete_action(self, action_id: int) -> None:
        action = await self._session.get(Action, action_id)
        if action is None:
            raise ActionNotFoundError(f"Action {action_id} not found")

        await self._session.delete(action)
        await self._session.flush()
        logger.info(f"Action {action_id} deleted")
