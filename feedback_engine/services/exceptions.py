"""Domain exceptions raised by the engine services."""


class FeedbackEngineError(Exception):
    """Base exception for engine operations."""
    pass


# Not found ------------------------------------------------------------------


class NotFoundError(FeedbackEngineError):
    """Referenced entity does not exist."""
    pass


class EmployeeNotFoundError(NotFoundError):
    """Employee does not exist."""
    pass


class CycleNotFoundError(NotFoundError):
    """Feedback cycle does not exist."""
    pass


class RequestNotFoundError(NotFoundError):
    """Feedback request does not exist."""
    pass


# Invalid input / state ------------------------------------------------------


class InvalidInteractionError(FeedbackEngineError):
    """Interaction cannot be recorded (self interaction, negative amounts)."""
    pass


class InvalidCycleError(FeedbackEngineError):
    """Cycle definition is inconsistent."""
    pass


class InvalidTransitionError(FeedbackEngineError):
    """Cycle status transition not allowed from the current state."""
    pass


class CycleClosedError(FeedbackEngineError):
    """Cycle is completed or archived and takes no new assignments."""
    pass


class InvalidResponseError(FeedbackEngineError):
    """Feedback response does not match its request."""
    pass


class InvalidAssignmentError(FeedbackEngineError):
    """Assignment run parameters are out of range."""
    pass


class ActionNotFoundError(NotFoundError):
    """Follow-up action does not exist."""
    pass


class InvalidActionError(FeedbackEngineError):
    """Follow-up action cannot be created as requested."""
    pass
