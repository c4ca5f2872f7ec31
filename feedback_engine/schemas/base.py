"""Base schemas and common types for the feedback API."""

from pydantic import BaseModel, ConfigDict, EmailStr


class FeedbackBaseModel(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM / dataclass mode
        populate_by_name=True,
    )


# =============================================================================
# ERROR RESPONSES
# =============================================================================


class ErrorDetail(FeedbackBaseModel):
    """Detailed error information."""

    field: str | None = None
    message: str
    code: str


class ErrorResponse(FeedbackBaseModel):
    """Standard error response format."""

    error: str
    message: str
    details: list[ErrorDetail] = []


# =============================================================================
# COMMON REFERENCE SCHEMAS
# =============================================================================


class EmployeeRef(FeedbackBaseModel):
    """Minimal employee reference for embedding in responses."""

    id: int
    name: str
    email: EmailStr
    department: str | None = None
    role: str | None = None
