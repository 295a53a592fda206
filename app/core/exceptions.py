from fastapi import status


class WorkflowError(Exception):
    """Base error for failures the HTTP layer reports as ``{"error": message}``."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(WorkflowError):
    """Missing or malformed input (token, phone number, payload)."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(WorkflowError):
    """Unknown, expired or used token, or a missing appointment."""

    status_code = status.HTTP_404_NOT_FOUND
