"""
Client-side error types. Every message is safe to show to the user.
"""

from typing import Optional


class StoreError(Exception):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class TransportError(StoreError):
    """The backend could not be reached."""


class ApplicationError(StoreError):
    """The backend answered with a non-2xx status."""


class NotFoundError(ApplicationError):
    pass


class ConflictError(ApplicationError):
    pass


class AuthError(ApplicationError):
    pass


class ValidationError(StoreError):
    """Rejected before anything was sent."""


def from_status(status: int, message: str) -> ApplicationError:
    if status == 404:
        return NotFoundError(message, status)
    if status == 409:
        return ConflictError(message, status)
    if status in (401, 403):
        return AuthError(message, status)
    return ApplicationError(message, status)
