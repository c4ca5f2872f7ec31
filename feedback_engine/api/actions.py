"""API routes for follow-up actions."""

from fastapi import APIRouter, Query, Response, status

from ..models import ActionStatus
from ..schemas import ActionCreate, ActionResponse, ActionStatusUpdate
from ..services import CreateActionInput
from .deps import ActionServiceDep, OrgGraphDep

router = APIRouter(prefix="/actions", tags=["actions"])


@router.post("", response_model=ActionResponse, status_code=status.HTTP_201_CREATED)
async def create_action(data: ActionCreate, actions: ActionServiceDep):
    """Assign a follow-up action, optionally tied to a feedback response."""
    action = await actions.create_action(CreateActionInput(**data.model_dump()))
    return ActionResponse.model_validate(action)


@router.get("/employee/{employee_id}", response_model=list[ActionResponse])
async def list_employee_actions(
    employee_id: int,
    graph: OrgGraphDep,
    actions: ActionServiceDep,
    status_filter: ActionStatus | None = Query(None, alias="status"),
):
    """Actions assigned to an employee, newest first."""
    await graph.get_employee(employee_id)
    items = await actions.actions_for(employee_id, status=status_filter)
    return [ActionResponse.model_validate(a) for a in items]


@router.get("/assigned-by/{assigner_id}", response_model=list[ActionResponse])
async def list_assigned_actions(
    assigner_id: int,
    graph: OrgGraphDep,
    actions: ActionServiceDep,
):
    await graph.get_employee(assigner_id)
    items = await actions.actions_assigned_by(assigner_id)
    return [ActionResponse.model_validate(a) for a in items]


@router.get("/{action_id}", response_model=ActionResponse)
async def get_action(action_id: int, actions: ActionServiceDep):
    action = await actions.get_action(action_id)
    return ActionResponse.model_validate(action)


@router.patch("/{action_id}", response_model=ActionResponse)
async def update_action_status(
    action_id: int,
    data: ActionStatusUpdate,
    actions: ActionServiceDep,
):
    action = await actions.update_action_status(action_id, data.status)
    return ActionResponse.model_validate(action)


@router.delete("/{action_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_action(action_id: int, actions: ActionServiceDep):
    await actions.delete_action(action_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
