"""
Error taxonomy for the API client.

Every failure that reaches a caller is an ``OpenAIError``. The concrete
subclass (and its ``kind``) says what went wrong; ``status_code`` and ``data``
carry the HTTP status and raw response body when the server answered.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    API = "api"
    NETWORK = "network"
    GENERIC = "generic"


# =============================================================================
# Exceptions
# =============================================================================

class OpenAIError(Exception):
    """Base exception for every client failure."""

    kind: ErrorKind = ErrorKind.GENERIC

    def __init__(self, message: str, status_code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.data = data

    def __str__(self):
        if self.status_code:
            return f"[{self.status_code}] {self.message}"
        return self.message

    def __repr__(self):
        return f"{self.__class__.__name__}(kind={self.kind.value!r}, message={self.message!r}, status_code={self.status_code!r})"


class ValidationError(OpenAIError):
    """Raised for 400 errors and for invalid local input."""
    kind = ErrorKind.VALIDATION


class AuthenticationError(OpenAIError):
    """Raised for 401 errors."""
    kind = ErrorKind.AUTHENTICATION


class RateLimitError(OpenAIError):
    """Raised for 429 errors."""
    kind = ErrorKind.RATE_LIMIT


class APIError(OpenAIError):
    """Raised for any other non-2xx response."""
    kind = ErrorKind.API


class NetworkError(OpenAIError):
    """The request never got a response."""
    kind = ErrorKind.NETWORK


class GenericError(OpenAIError):
    kind = ErrorKind.GENERIC


_ERRORS_BY_KIND = {
    cls.kind: cls
    for cls in (ValidationError, AuthenticationError, RateLimitError, APIError, NetworkError, GenericError)
}

_KINDS_BY_STATUS = {
    400: ErrorKind.VALIDATION,
    401: ErrorKind.AUTHENTICATION,
    429: ErrorKind.RATE_LIMIT,
}


def error_for(kind: ErrorKind, message: str, status_code: Optional[int] = None, data: Any = None) -> OpenAIError:
    """Build the exception matching ``kind``."""
    return _ERRORS_BY_KIND[ErrorKind(kind)](message, status_code=status_code, data=data)


def extract_error_message(data: Any) -> Optional[str]:
    """Return ``data["error"]["message"]`` if the body carries one."""
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    return None


def error_from_response(status_code: int, data: Any = None, fallback_message: str = None) -> OpenAIError:
    """Classify a non-2xx response into exactly one error."""
    message = extract_error_message(data) or fallback_message or f"Request failed with status code {status_code}"
    kind = _KINDS_BY_STATUS.get(status_code, ErrorKind.API)
    return error_for(kind, message, status_code=status_code, data=data)
