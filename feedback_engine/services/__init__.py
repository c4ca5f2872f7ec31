"""Business logic services for the peer feedback engine."""

from .actions import ActionService, CreateActionInput
from .analytics import FeedbackAnalytics, MemberCompletion, TeamCompletion
from .cycle_manager import (
    AssignmentOptions,
    ClosureConfig,
    CreateCycleInput,
    CycleManager,
    CycleStats,
    RequestCounts,
    assignment_options,
    completion_rate,
    count_requests,
    should_complete,
)
from .exceptions import (
    ActionNotFoundError,
    CycleClosedError,
    CycleNotFoundError,
    EmployeeNotFoundError,
    FeedbackEngineError,
    InvalidActionError,
    InvalidAssignmentError,
    InvalidCycleError,
    InvalidInteractionError,
    InvalidResponseError,
    InvalidTransitionError,
    NotFoundError,
    RequestNotFoundError,
)
from .feedback_assigner import AssignmentConfig, AssignmentResult, FeedbackAssigner
from .interaction_ledger import (
    CollaborationMetrics,
    InteractionAggregate,
    InteractionLedger,
    PeerCollaboration,
)
from .org_graph import EmployeeNode, OrganizationGraph
from .peer_ranker import (
    BatchFailure,
    NetworkStats,
    PeerRanker,
    RankedPeer,
    RankingBatchResult,
    calculate_collaboration_score,
    interaction_weight,
    rank_all_peers_concurrently,
    rank_scores,
    recency_multiplier,
)
from .responses import ResponseHistory, SubmitResponseInput

__all__ = [
    # Organization graph & ledger
    "OrganizationGraph",
    "EmployeeNode",
    "InteractionLedger",
    "InteractionAggregate",
    "PeerCollaboration",
    "CollaborationMetrics",
    # Ranking
    "PeerRanker",
    "RankedPeer",
    "RankingBatchResult",
    "BatchFailure",
    "NetworkStats",
    "interaction_weight",
    "recency_multiplier",
    "calculate_collaboration_score",
    "rank_scores",
    "rank_all_peers_concurrently",
    # Assignment
    "FeedbackAssigner",
    "AssignmentConfig",
    "AssignmentResult",
    # Cycles
    "CycleManager",
    "ClosureConfig",
    "CreateCycleInput",
    "CycleStats",
    "RequestCounts",
    "count_requests",
    "AssignmentOptions",
    "assignment_options",
    "completion_rate",
    "should_complete",
    # Responses
    "ResponseHistory",
    "SubmitResponseInput",
    # Follow-up actions
    "ActionService",
    "CreateActionInput",
    # Analytics
    "FeedbackAnalytics",
    "TeamCompletion",
    "MemberCompletion",
    # Errors
    "FeedbackEngineError",
    "NotFoundError",
    "EmployeeNotFoundError",
    "CycleNotFoundError",
    "RequestNotFoundError",
    "InvalidInteractionError",
    "InvalidCycleError",
    "InvalidTransitionError",
    "CycleClosedError",
    "InvalidResponseError",
    "InvalidAssignmentError",
    "ActionNotFoundError",
    "InvalidActionError",
]
