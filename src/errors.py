"""Error taxonomy for the authentication service.

Every failure that crosses the service boundary is one of these classes.
The app-level exception handler turns them into ``{"error": message}``
responses with ``status_code``; 5xx details stay in the server log.
"""

from fastapi import status


class AuthServiceError(Exception):
    """Base exception for all authentication service errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequestError(AuthServiceError):
    """Missing or ambiguous login selector."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Email or Telegram user ID is required"


class ValidationFailureError(AuthServiceError):
    """Malformed input; the message names the offending field."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class InvalidCredentialsError(AuthServiceError):
    """Wrong password, unknown email or unknown external id.

    The message is identical for every cause so that callers cannot tell
    whether an identifier exists.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class DuplicateIdentityError(AuthServiceError):
    """Email or external id already registered."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "User already exists"


class NotFoundError(AuthServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "User not found"


class UnauthorizedError(AuthServiceError):
    """Bearer token missing, malformed, expired or otherwise invalid.

    ``reason`` records which check failed; it is logged but never sent to
    the client.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"

    MISSING_HEADER = "missing_header"
    MALFORMED_HEADER = "malformed_header"
    EXPIRED = "expired"
    MALFORMED = "malformed"

    def __init__(self, reason: str, message: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason


class InternalError(AuthServiceError):
    """Server-side defect; never exposes its message to the client."""


class HashingFailure(InternalError):
    """The password hashing primitive failed (entropy or resource exhaustion)."""


class DataIntegrityError(InternalError):
    """A persisted record violates an invariant (e.g. missing timestamps)."""


class ConfigurationError(InternalError):
    """Invalid configuration value, such as an unparseable token ttl."""


# =============================================================================
# Token codec errors (translated to UnauthorizedError by the auth dependency)
# =============================================================================


class TokenError(Exception):
    """Base exception for bearer token verification failures."""


class TokenExpiredError(TokenError):
    """Token signature is valid but ``exp`` has passed."""


class MalformedTokenError(TokenError):
    """Token is structurally invalid, badly signed or missing claims."""
