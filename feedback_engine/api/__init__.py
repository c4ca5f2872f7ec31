"""API routes for the peer feedback engine."""

from fastapi import APIRouter

from .actions import router as actions_router
from .analytics import router as analytics_router
from .cycles import router as cycles_router
from .employees import router as employees_router
from .feedback import router as feedback_router
from .interactions import router as interactions_router

# Main API router
api_router = APIRouter()

# Directory, collaboration graph and rankings
api_router.include_router(employees_router)
api_router.include_router(interactions_router)

# Cycles and the feedback they generate
api_router.include_router(cycles_router)
api_router.include_router(feedback_router)

# Follow-ups and reporting
api_router.include_router(actions_router)
api_router.include_router(analytics_router)

__all__ = ["api_router"]
