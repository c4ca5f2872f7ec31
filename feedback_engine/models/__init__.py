"""SQLAlchemy ORM Models for the peer feedback engine."""

from .base import Base, UTCDateTime
from .models import (
    # Enums
    ActionStatus,
    CycleStatus,
    CycleType,
    InteractionType,
    RequestStatus,
    RequestType,
    # Organization graph
    Employee,
    # Ledger & rankings
    Interaction,
    PeerRanking,
    # Cycles
    FeedbackCycle,
    FeedbackRequest,
    FeedbackResponse,
    # Follow-ups
    Action,
)

__all__ = [
    # Base
    "Base",
    "UTCDateTime",
    # Enums
    "InteractionType",
    "CycleType",
    "CycleStatus",
    "RequestType",
    "RequestStatus",
    "ActionStatus",
    # Organization graph
    "Employee",
    # Ledger & rankings
    "Interaction",
    "PeerRanking",
    # Cycles
    "FeedbackCycle",
    "FeedbackRequest",
    "FeedbackResponse",
    # Follow-ups
    "Action",
]
