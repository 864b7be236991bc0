"""Error taxonomy shared by the HTTP routes and the chat relay."""

from typing import Any, Optional

from fastapi import status


class CRMError(Exception):
    """Base class for errors that are reported back to the caller."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class AuthError(CRMError):
    """Missing, malformed, expired or unverifiable credential."""

    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDeniedError(CRMError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(CRMError):
    """Referenced customer, user or chat session does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(CRMError):
    """Malformed event payload or request body."""

    status_code = status.HTTP_400_BAD_REQUEST


class PersistenceError(CRMError):
    """The underlying store rejected or failed an operation."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
