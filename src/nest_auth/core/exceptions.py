"""Exception hierarchy for the authentication core.

Every error raised by repositories, strategies, guards and services is an
``AuthError`` carrying the HTTP status it maps to at the API boundary. The
global handlers in ``api.middleware.error_handler`` turn them into the
``{statusCode, message, timestamp, path}`` envelope.
"""

from fastapi import status


class AuthError(Exception):
    """Base exception for all authentication/authorization errors.

    Attributes:
        message: Client-facing message (never contains secrets)
        http_status: HTTP status code to return
    """

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(AuthError):
    """Missing, invalid or expired credential."""

    http_status = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(AuthError):
    """Authenticated, but the role or ownership is insufficient."""

    http_status = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFound(AuthError):
    """Resource absent.

    Identity-related lookups convert this into ``Unauthenticated`` before it
    reaches the client so that existence is never revealed.
    """

    http_status = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ValidationFailed(AuthError):
    http_status = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input data"


class Conflict(AuthError):
    http_status = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class InternalError(AuthError):
    pass
