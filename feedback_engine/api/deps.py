"""Service dependencies shared by the route modules."""

from typing import Annotated

from fastapi import Depends

from ..core import ClockDep, SessionDep, SettingsDep
from ..services import (
    ActionService,
    AssignmentConfig,
    ClosureConfig,
    CycleManager,
    FeedbackAnalytics,
    FeedbackAssigner,
    InteractionLedger,
    OrganizationGraph,
    PeerRanker,
    ResponseHistory,
)


def get_org_graph(session: SessionDep) -> OrganizationGraph:
    return OrganizationGraph(session)


def get_interaction_ledger(session: SessionDep, clock: ClockDep) -> InteractionLedger:
    return InteractionLedger(session, clock)


def get_peer_ranker(session: SessionDep, clock: ClockDep) -> PeerRanker:
    return PeerRanker(session, clock)


def get_feedback_assigner(
    session: SessionDep,
    clock: ClockDep,
    settings: SettingsDep,
) -> FeedbackAssigner:
    config = AssignmentConfig(
        candidate_buffer=settings.candidate_buffer,
        recency_exclusion_days=settings.recency_exclusion_days,
    )
    return FeedbackAssigner(session, clock, config)


def get_cycle_manager(
    session: SessionDep,
    clock: ClockDep,
    settings: SettingsDep,
) -> CycleManager:
    config = ClosureConfig(
        completion_threshold=settings.completion_threshold,
        close_after_days=settings.close_after_days,
    )
    return CycleManager(session, clock, config)


def get_response_history(session: SessionDep, clock: ClockDep) -> ResponseHistory:
    return ResponseHistory(session, clock)


def get_action_service(session: SessionDep, clock: ClockDep) -> ActionService:
    return ActionService(session, clock)


def get_feedback_analytics(session: SessionDep) -> FeedbackAnalytics:
    return FeedbackAnalytics(session)


OrgGraphDep = Annotated[OrganizationGraph, Depends(get_org_graph)]
LedgerDep = Annotated[InteractionLedger, Depends(get_interaction_ledger)]
RankerDep = Annotated[PeerRanker, Depends(get_peer_ranker)]
AssignerDep = Annotated[FeedbackAssigner, Depends(get_feedback_assigner)]
CycleManagerDep = Annotated[CycleManager, Depends(get_cycle_manager)]
ResponsesDep = Annotated[ResponseHistory, Depends(get_response_history)]
ActionServiceDep = Annotated[ActionService, Depends(get_action_service)]
AnalyticsDep = Annotated[FeedbackAnalytics, Depends(get_feedback_analytics)]
