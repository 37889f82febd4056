# errors.py
"""
Domain errors raised by the auth service and the repository.

The API layer turns each of them into a JSON body of the form
``{"error": <message>}`` with the matching status code.
"""
from fastapi import status


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Missing or malformed input."""
    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(AppError):
    """Missing, invalid or expired credentials."""
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    """A unique field is already taken."""
    status_code = status.HTTP_409_CONFLICT


class InternalError(AppError):
    """Datastore or unexpected failure. The message never carries internal detail."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "server error"):
        super().__init__(message)
