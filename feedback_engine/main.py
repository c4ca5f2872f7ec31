"""Peer Feedback Engine: Main FastAPI Application.

Ranks each employee's collaborators from recorded interactions and turns
feedback cycles into concrete, idempotent feedback assignments.
"""

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import api_router
from .core import close_db, get_settings, init_db
from .schemas import ErrorResponse
from .services import (
    CycleClosedError,
    FeedbackEngineError,
    InvalidTransitionError,
    NotFoundError,
)

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info(f"Starting {settings.app_name} {settings.app_version} ({settings.environment})")

    # Startup - skip init_db in production (tables are migrated separately)
    if settings.environment != "production":
        await init_db()
    yield
    # Shutdown
    await close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    ## Peer Feedback Engine API

    Turns collaboration data into feedback assignments.

    ### Key Features

    - **Interaction Ledger**: Symmetric counters of chats, meetings, shared tasks and files.
    - **Peer Rankings**: Weighted, recency-decayed collaboration scores per employee.
    - **Feedback Cycles**: Peer, 360, pulse and custom cycles with automatic closure.
    - **Idempotent Assignment**: Re-running a cycle's assignment never duplicates a request.
    """,
    openapi_url=f"{settings.api_prefix}/openapi.json",
    docs_url=f"{settings.api_prefix}/docs",
    redoc_url=f"{settings.api_prefix}/redoc",
    lifespan=lifespan,
)

# CORS middleware with explicit origins
cors_origins = [
    "http://localhost:3000",
    "http://localhost:8000",
]
for origin in settings.allowed_origins:
    if origin and origin not in cors_origins:
        cors_origins.append(origin)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS", "HEAD"],
    allow_headers=["*"],
    max_age=86400,
)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================


def _error(status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, message=str(exc), details=[]).model_dump(),
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, "not_found", exc)


@app.exception_handler(InvalidTransitionError)
@app.exception_handler(CycleClosedError)
async def conflict_handler(request: Request, exc: FeedbackEngineError):
    return _error(status.HTTP_409_CONFLICT, "conflict", exc)


@app.exception_handler(FeedbackEngineError)
async def invalid_request_handler(request: Request, exc: FeedbackEngineError):
    return _error(status.HTTP_400_BAD_REQUEST, "invalid_request", exc)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    error_detail = str(exc)
    # Outside production, include the full traceback in the log
    if settings.debug or settings.environment != "production":
        error_detail = f"{str(exc)}\n{traceback.format_exc()}"

    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {error_detail}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="internal_error",
            message=f"An unexpected error occurred: {str(exc)[:200]}",
            details=[],
        ).model_dump(),
    )


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.app_version}


# Include API routes
app.include_router(api_router, prefix=settings.api_prefix)


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "feedback_engine.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
