"""
Scheduling Errors

Local validation failures raised by the scheduling core. Every error carries a
stable ``code`` so callers can translate it without matching on messages.
None of these represent transient conditions, so nothing here is retried.
"""

from typing import Any, Dict, Optional


class SchedulingError(Exception):
    """Base exception for scheduling engine errors"""
    code = "SCHEDULING_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidTimestamp(SchedulingError):
    """Unparsable or ambiguous instant."""
    code = "INVALID_TIMESTAMP"


class InvalidInterval(SchedulingError):
    """Planned interval that cannot be coerced, e.g. end not after start."""
    code = "INVALID_INTERVAL"


class InvalidStateForReflection(SchedulingError):
    """Reflection written on a task that is not completed."""
    code = "INVALID_STATE_FOR_REFLECTION"


class StateTransitionRejected(SchedulingError):
    """Status change outside the allowed lifecycle table."""
    code = "STATE_TRANSITION_REJECTED"


class InvalidTaskData(SchedulingError):
    """Task fields that fail validation, e.g. an empty title."""
    code = "INVALID_TASK"


class InvalidRecurrenceRule(SchedulingError):
    """Recurrence payload that fails validation."""
    code = "INVALID_RECURRENCE_RULE"


class TaskNotFound(SchedulingError):
    """No task with the given id for the given owner."""
    code = "NOT_FOUND"


def create_error_response(error: SchedulingError) -> Dict[str, Any]:
    """
    Create a standardized error response

    Args:
        error: The SchedulingError to convert

    Returns:
        Standardized error response dictionary
    """
    return {
        "success": False,
        "error": {
            "code": error.code,
            "message": error.message,
            "details": error.details
        }
    }
