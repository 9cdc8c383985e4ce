"""Scheduling errors - raised before any mutation, mapped to HTTP status codes by the app"""


class SchedulingError(Exception):
    """Base class for errors surfaced to callers of the booking API"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """Malformed availability or time input"""

    status_code = 400


class NotFoundError(SchedulingError):
    """Viewing, property, conversation or agent missing or owned by another agent"""

    status_code = 404


class ConflictError(SchedulingError):
    """Requested slot is outside availability or overlaps another booking"""

    status_code = 409


class IllegalStateTransitionError(SchedulingError):
    """Viewing status does not allow the requested transition"""

    status_code = 409
