"""Loops SDK exceptions."""

from __future__ import annotations


class LoopsError(Exception):
    """Base exception for Loops SDK."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(LoopsError, ValueError):
    """Raised when call arguments are rejected before any request is sent."""


class ConfigurationError(LoopsError):
    """Raised when the base URL or a request path is malformed."""


class EncodingError(LoopsError):
    """Raised when a request body cannot be serialized to JSON."""


class DecodingError(LoopsError):
    """Raised when a successful response does not have the expected shape."""


class TransportError(LoopsError):
    """Raised on connection failures, timeouts and other network errors."""


class NotFoundError(LoopsError):
    """Raised when a lookup succeeds but matches nothing."""

    def __init__(self, message: str = "Contact not found"):
        super().__init__(message)


class RemoteError(LoopsError):
    """Raised when the API answers with a failure status.

    ``message`` is the text provided by the server, or the raw response
    body when the server did not send a recognizable error object.
    """

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message, status_code=status_code)
        self.body = body


class AuthenticationError(RemoteError):
    """Raised when the API key is missing or invalid (401)."""


class ForbiddenError(RemoteError):
    """Raised when access is denied (403)."""


class RateLimitError(RemoteError):
    """Raised when rate limit is exceeded (429)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = 429,
        body: str = "",
        retry_after: int | None = None,
    ):
        super().__init__(message, status_code=status_code, body=body)
        self.retry_after = retry_after
