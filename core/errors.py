"""
Error taxonomy shared by the authorization layer and the workflow services.

Every failure a caller must be able to tell apart maps to its own class so the
HTTP layer can translate it to a distinct status code.
"""

from typing import Any, Optional

from fastapi import status


class JobBoardError(Exception):
    """Base class for domain errors surfaced to API callers."""

    code: str = "JOBBOARD_ERROR"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An error occurred"

    def __init__(self, message: Optional[str] = None, details: Optional[dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class Unauthenticated(JobBoardError):
    """No credential, or an invalid/expired one, on a required path."""

    code = "UNAUTHENTICATED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class Forbidden(JobBoardError):
    """Valid principal without permission for the action."""

    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFound(JobBoardError):
    """Resource id does not resolve."""

    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class InvalidState(JobBoardError):
    """Operation not legal for the resource's current state."""

    code = "INVALID_STATE"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Operation not allowed in the current state"


class Conflict(JobBoardError):
    """Uniqueness violation, e.g. a duplicate application."""

    code = "CONFLICT"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class ValidationFailure(JobBoardError):
    """Malformed input to an operation."""

    code = "VALIDATION_FAILURE"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid input"


class StoreUnavailable(JobBoardError):
    """Persistent store failed or could not be reached."""

    code = "STORE_UNAVAILABLE"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Database service temporarily unavailable"
