"""Workflow error taxonomy.

Every error carries a machine-readable ``code``, a human message naming the
violated precondition, the HTTP status it maps to, and optional details.
"""
from typing import Any, Dict, Optional


class WorkflowError(Exception):
    """Base class for all workflow errors."""

    status_code = 400
    code = "WORKFLOW_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if code is not None:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.details}


class NotFoundError(WorkflowError):
    """Order, department, submission or worker is missing."""
    status_code = 404
    code = "NOT_FOUND"


class InvalidTransitionError(WorkflowError):
    """A state-machine precondition was violated."""
    status_code = 400
    code = "INVALID_TRANSITION"


class AlreadyStartedError(InvalidTransitionError):
    code = "ALREADY_STARTED"


class NotStartedError(InvalidTransitionError):
    code = "NOT_STARTED"


class ValidationError(WorkflowError):
    """Malformed or out-of-range input."""
    status_code = 422
    code = "VALIDATION_ERROR"


class ForbiddenError(WorkflowError):
    """Role or department mismatch."""
    status_code = 403
    code = "FORBIDDEN"


class ConflictError(WorkflowError):
    """A concurrent write changed the row first."""
    status_code = 409
    code = "CONFLICT"


class HighVarianceUnacknowledgedError(WorkflowError):
    """Submission variance exceeds the threshold and was not acknowledged."""
    status_code = 400
    code = "HIGH_VARIANCE_UNACKNOWLEDGED"


class AlreadyExistsError(WorkflowError):
    """An active final submission already exists for the order."""
    status_code = 409
    code = "ALREADY_EXISTS"
