"""SQLAlchemy ORM Models for the peer feedback engine.

The relational shape the ranking and assignment engine depends on:
employees (organization graph), collaborations (interaction ledger),
peer_rankings (materialized ranking view), feedback cycles, requests,
responses and the follow-up actions raised from them.
"""

from datetime import datetime
from enum import Enum as PyEnum
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


def _enum_column(enum_cls: type[PyEnum], name: str) -> Enum:
    return Enum(enum_cls, name=name, values_callable=lambda x: [e.value for e in x])


JSONType = JSON().with_variant(JSONB, "postgresql")


# =============================================================================
# ENUMS
# =============================================================================


class InteractionType(str, PyEnum):
    CHAT = "chat"
    MEETING = "meeting"
    TASK = "task"
    FILE = "file"


class CycleType(str, PyEnum):
    PEER = "peer"
    FULL_360 = "360"
    PULSE = "pulse"
    CUSTOM = "custom"


class CycleStatus(str, PyEnum):
    ACTIVE = "active"
    COMPLETED = "completed"  # Terminal
    ARCHIVED = "archived"  # Terminal


class RequestType(str, PyEnum):
    PEER = "peer"
    MANAGER = "manager"
    UPWARD = "upward"
    SELF = "self"


class RequestStatus(str, PyEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class ActionStatus(str, PyEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# =============================================================================
# ORGANIZATION GRAPH
# =============================================================================


class Employee(Base):
    """Employee node; ``manager_id`` forms a forest."""

    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    azure_id: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
        comment="External directory (Azure AD) object id",
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    department: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[str | None] = mapped_column(String(255))
    manager_id: Mapped[int | None] = mapped_column(
        ForeignKey("employees.id"), nullable=True
    )
    is_manager: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )

    # Relationships
    manager: Mapped["Employee | None"] = relationship(
        back_populates="reports", remote_side="Employee.id"
    )
    reports: Mapped[list["Employee"]] = relationship(back_populates="manager")

    __table_args__ = (
        Index("idx_employees_manager", "manager_id"),
    )


# =============================================================================
# INTERACTION LEDGER
# =============================================================================


class Interaction(Base):
    """Accumulated interactions of one type, seen from ``employee_id``'s side."""

    __tablename__ = "collaborations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id"), nullable=False
    )
    peer_id: Mapped[int] = mapped_column(ForeignKey("employees.id"), nullable=False)
    interaction_type: Mapped[str] = mapped_column(String(32), nullable=False)
    interaction_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_interaction_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )

    peer: Mapped["Employee"] = relationship(foreign_keys=[peer_id])

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "peer_id", "interaction_type",
            name="uq_collaborations_pair_type",
        ),
        CheckConstraint("interaction_count >= 0", name="count_non_negative"),
        CheckConstraint("total_minutes >= 0", name="minutes_non_negative"),
        Index("idx_collaborations_employee", "employee_id"),
        Index("idx_collaborations_peer", "peer_id"),
    )


class PeerRanking(Base):
    """Materialized ranking row. Replaced wholesale per employee."""

    __tablename__ = "peer_rankings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id"), nullable=False
    )
    peer_id: Mapped[int] = mapped_column(ForeignKey("employees.id"), nullable=False)
    collaboration_score: Mapped[float] = mapped_column(Float, nullable=False)
    rank_position: Mapped[int] = mapped_column(Integer, nullable=False)
    calculated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )

    peer: Mapped["Employee"] = relationship(foreign_keys=[peer_id])

    __table_args__ = (
        UniqueConstraint("employee_id", "peer_id", name="uq_peer_rankings_pair"),
        UniqueConstraint(
            "employee_id", "rank_position", name="uq_peer_rankings_position"
        ),
        CheckConstraint("rank_position >= 1", name="rank_positive"),
        Index("idx_peer_rankings_employee", "employee_id"),
    )


# =============================================================================
# FEEDBACK CYCLES & REQUESTS
# =============================================================================


class FeedbackCycle(Base):
    """Bounded window in which feedback requests are assigned and due."""

    __tablename__ = "feedback_cycles"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    cycle_type: Mapped[CycleType] = mapped_column(
        _enum_column(CycleType, "cycle_type"),
        default=CycleType.PEER,
        nullable=False,
    )
    start_date: Mapped[datetime] = mapped_column(nullable=False)
    end_date: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[CycleStatus] = mapped_column(
        _enum_column(CycleStatus, "cycle_status"),
        default=CycleStatus.ACTIVE,
        nullable=False,
    )
    config: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    created_by: Mapped[int | None] = mapped_column(
        ForeignKey("employees.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    requests: Mapped[list["FeedbackRequest"]] = relationship(back_populates="cycle")

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="dates_ordered"),
        Index("idx_feedback_cycles_status", "status"),
    )


class FeedbackRequest(Base):
    """Obligation for ``provider_id`` to give feedback to ``requester_id``."""

    __tablename__ = "feedback_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    requester_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id"), nullable=False
    )
    provider_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id"), nullable=False
    )
    cycle_id: Mapped[UUID] = mapped_column(
        ForeignKey("feedback_cycles.id"), nullable=False
    )
    request_type: Mapped[RequestType] = mapped_column(
        _enum_column(RequestType, "request_type"),
        default=RequestType.PEER,
        nullable=False,
    )
    status: Mapped[RequestStatus] = mapped_column(
        _enum_column(RequestStatus, "request_status"),
        default=RequestStatus.PENDING,
        nullable=False,
    )
    assigned_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )
    due_date: Mapped[datetime] = mapped_column(nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    reminder_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_reminder_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Relationships
    cycle: Mapped["FeedbackCycle"] = relationship(back_populates="requests")
    requester: Mapped["Employee"] = relationship(foreign_keys=[requester_id])
    provider: Mapped["Employee"] = relationship(foreign_keys=[provider_id])

    __table_args__ = (
        # Storage-level backstop for concurrent assignment retries
        UniqueConstraint(
            "requester_id", "provider_id", "cycle_id",
            name="uq_feedback_requests_assignment",
        ),
        CheckConstraint("requester_id <> provider_id", name="no_self_assignment"),
        Index("idx_feedback_requests_provider", "provider_id"),
        Index("idx_feedback_requests_requester", "requester_id"),
        Index("idx_feedback_requests_cycle", "cycle_id"),
    )


class FeedbackResponse(Base):
    """Submitted feedback. Read back as the provider history for a requester."""

    __tablename__ = "feedback_responses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    request_id: Mapped[int] = mapped_column(
        ForeignKey("feedback_requests.id"), nullable=False
    )
    requester_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id"), nullable=False
    )
    provider_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id"), nullable=False
    )
    strengths: Mapped[str | None] = mapped_column(Text)
    areas_for_improvement: Mapped[str | None] = mapped_column(Text)
    specific_examples: Mapped[str | None] = mapped_column(Text)
    actionable_suggestions: Mapped[str | None] = mapped_column(Text)
    additional_context: Mapped[str | None] = mapped_column(Text)
    overall_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    collaboration_rating: Mapped[int | None] = mapped_column(Integer)
    communication_rating: Mapped[int | None] = mapped_column(Integer)
    technical_rating: Mapped[int | None] = mapped_column(Integer)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )

    request: Mapped["FeedbackRequest"] = relationship()

    __table_args__ = (
        CheckConstraint(
            "overall_rating BETWEEN 1 AND 5", name="overall_rating_range"
        ),
        Index("idx_feedback_responses_requester", "requester_id"),
        Index("idx_feedback_responses_request", "request_id"),
    )


# =============================================================================
# FOLLOW-UP ACTIONS
# =============================================================================


class Action(Base):
    """Follow-up item assigned to an employee, usually off the back of feedback."""

    __tablename__ = "actions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    response_id: Mapped[int | None] = mapped_column(
        ForeignKey("feedback_responses.id", ondelete="SET NULL"), nullable=True
    )
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id"), nullable=False
    )
    assigned_by: Mapped[int] = mapped_column(
        ForeignKey("employees.id"), nullable=False
    )
    action_type: Mapped[str] = mapped_column(
        String(64), default="development", nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[ActionStatus] = mapped_column(
        _enum_column(ActionStatus, "action_status"),
        default=ActionStatus.PENDING,
        nullable=False,
    )
    due_date: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )

    # Relationships
    employee: Mapped["Employee"] = relationship(foreign_keys=[employee_id])
    assigner: Mapped["Employee"] = relationship(foreign_keys=[assigned_by])
    response: Mapped["FeedbackResponse | None"] = relationship()

    __table_args__ = (
        Index("idx_actions_employee", "employee_id"),
        Index("idx_actions_assigned_by", "assigned_by"),
    )
