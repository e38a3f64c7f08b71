# errors.py
from typing import Optional

from fastapi import status


class AppError(Exception):
    """Base for errors that map straight onto an HTTP response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class ConflictError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource already exists"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"


class NotFoundError(AppError):
    # Only raised for tokens whose user has since disappeared
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "User not found"


class InternalError(AppError):
    pass
