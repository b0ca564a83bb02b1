"""
Domain errors raised by the job board.

Each error carries the HTTP status it maps to and a message that is safe to
show to the caller. The handlers in `careerhive.main` wrap them into the
response envelope.
"""
from __future__ import annotations

from fastapi import status


class JobBoardError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(JobBoardError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request."


class AuthError(JobBoardError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid authentication token."


class Forbidden(JobBoardError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to modify this job."


class NotFound(JobBoardError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Job not found."


class UnsafeLink(JobBoardError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "The provided link is not safe."


class Conflict(JobBoardError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists."


class LinkCheckError(RuntimeError):
    """The link reputation service could not give a verdict."""
