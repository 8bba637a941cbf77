"""Domain Exceptions

Services raise these; the application's exception handler logs them and
renders an ``ErrorResponse`` with the matching HTTP status.
"""

from typing import Any, Dict, Optional

from fastapi import status


class CourseworkError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        # Identifiers (assignment_id, student_id, ...) attached to the log record
        self.context = context or {}


class NotFoundError(CourseworkError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "RESOURCE_NOT_FOUND"


class ForbiddenError(CourseworkError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class InvalidRequestError(CourseworkError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_REQUEST"


class StorageError(CourseworkError):
    """Attachment upload or delete failed"""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "STORAGE_ERROR"
