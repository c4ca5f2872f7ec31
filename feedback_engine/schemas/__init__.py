"""Feedback API Schemas.

Schemas are organized by domain:
- base: error envelope, references
- employees: employees, interactions, rankings
- feedback: requests and responses
- cycles: cycles, stats, assignment runs
- actions: follow-up actions, completion analytics
"""

from .base import EmployeeRef, ErrorDetail, ErrorResponse, FeedbackBaseModel
from .employees import (
    BatchFailureResponse,
    CollaborationMetricsResponse,
    CollaborationResponse,
    EmployeeResponse,
    InteractionCreate,
    NetworkStatsResponse,
    RankedPeerResponse,
    RankingBatchResponse,
)
from .actions import (
    ActionCreate,
    ActionResponse,
    ActionStatusUpdate,
    CompletionStatsResponse,
    MemberCompletionResponse,
    TeamCompletionResponse,
)
from .feedback import (
    FeedbackRequestDetail,
    FeedbackRequestResponse,
    FeedbackResponseCreate,
    FeedbackResponseOut,
    RequestStatusUpdate,
)
from .cycles import (
    AssignmentResponse,
    AssignRequest,
    CycleConfig,
    CycleCreate,
    CycleCreatedResponse,
    CycleDetailResponse,
    CycleResponse,
    CycleStatsResponse,
)

__all__ = [
    # Base
    "FeedbackBaseModel",
    "ErrorDetail",
    "ErrorResponse",
    "EmployeeRef",
    # Employees
    "EmployeeResponse",
    "InteractionCreate",
    "CollaborationResponse",
    "CollaborationMetricsResponse",
    "RankedPeerResponse",
    "RankingBatchResponse",
    "BatchFailureResponse",
    "NetworkStatsResponse",
    # Feedback
    "FeedbackRequestResponse",
    "FeedbackRequestDetail",
    "RequestStatusUpdate",
    "FeedbackResponseCreate",
    "FeedbackResponseOut",
    # Cycles
    "CycleConfig",
    "CycleCreate",
    "CycleResponse",
    "CycleStatsResponse",
    "CycleDetailResponse",
    "AssignRequest",
    "AssignmentResponse",
    "CycleCreatedResponse",
    # Actions & analytics
    "ActionCreate",
    "ActionStatusUpdate",
    "ActionResponse",
    "CompletionStatsResponse",
    "MemberCompletionResponse",
    "TeamCompletionResponse",
]
