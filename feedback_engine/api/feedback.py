"""API routes for feedback requests and responses."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from ..models import FeedbackRequest, FeedbackResponse
from ..schemas import (
    EmployeeRef,
    FeedbackRequestDetail,
    FeedbackRequestResponse,
    FeedbackResponseCreate,
    FeedbackResponseOut,
    RequestStatusUpdate,
)
from ..services import SubmitResponseInput
from .deps import AssignerDep, OrgGraphDep, ResponsesDep

router = APIRouter(prefix="/feedback", tags=["feedback"])


# =============================================================================
# HELPERS
# =============================================================================


def request_to_detail(request: FeedbackRequest) -> FeedbackRequestDetail:
    """Convert a FeedbackRequest with loaded relationships to a detail schema."""
    return FeedbackRequestDetail(
        **FeedbackRequestResponse.model_validate(request).model_dump(),
        requester=EmployeeRef.model_validate(request.requester),
        provider=EmployeeRef.model_validate(request.provider),
        cycle_name=request.cycle.name,
    )


def response_to_out(response: FeedbackResponse) -> FeedbackResponseOut:
    """Anonymous responses never reveal who wrote them."""
    out = FeedbackResponseOut.model_validate(response)
    if response.is_anonymous:
        out.provider_id = None
    return out


# =============================================================================
# REQUESTS
# =============================================================================


@router.get("/requests/pending", response_model=list[FeedbackRequestDetail])
async def list_pending_requests(
    graph: OrgGraphDep,
    assigner: AssignerDep,
    employee_id: int = Query(..., description="Provider who owes the feedback"),
):
    """Feedback an employee still has to give, soonest due first."""
    await graph.get_employee(employee_id)
    requests = await assigner.get_pending_requests_for(employee_id)
    return [request_to_detail(r) for r in requests]


@router.get("/requests/sent", response_model=list[FeedbackRequestDetail])
async def list_sent_requests(
    graph: OrgGraphDep,
    assigner: AssignerDep,
    employee_id: int = Query(..., description="Requester the feedback is about"),
    cycle_id: UUID | None = Query(None),
):
    """Feedback requested on an employee's behalf."""
    await graph.get_employee(employee_id)
    requests = await assigner.get_requests_from(employee_id, cycle_id=cycle_id)
    return [request_to_detail(r) for r in requests]


@router.get("/requests/{request_id}", response_model=FeedbackRequestDetail)
async def get_request(request_id: int, assigner: AssignerDep):
    request = await assigner.get_request(request_id)
    return request_to_detail(request)


@router.patch("/requests/{request_id}", response_model=FeedbackRequestResponse)
async def update_request_status(
    request_id: int,
    data: RequestStatusUpdate,
    assigner: AssignerDep,
):
    """Move a request to a new status (e.g. ``in_progress`` once drafting starts)."""
    request = await assigner.update_request_status(request_id, data.status)
    return FeedbackRequestResponse.model_validate(request)


# =============================================================================
# RESPONSES
# =============================================================================


@router.post(
    "/responses",
    response_model=FeedbackResponseOut,
    status_code=status.HTTP_201_CREATED,
)
async def submit_response(data: FeedbackResponseCreate, responses: ResponsesDep):
    """Submit feedback against a request and mark the request completed."""
    response = await responses.submit_response(SubmitResponseInput(**data.model_dump()))
    return response_to_out(response)


@router.get("/responses/received", response_model=list[FeedbackResponseOut])
async def list_received_responses(
    graph: OrgGraphDep,
    responses: ResponsesDep,
    employee_id: int = Query(..., description="Employee the feedback is about"),
):
    await graph.get_employee(employee_id)
    received = await responses.responses_received(employee_id)
    return [response_to_out(r) for r in received]
