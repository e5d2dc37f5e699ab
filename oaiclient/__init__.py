"""
oaiclient - client library for the OpenAI REST API.
"""

from .config import ClientOptions, LoggingOptions
from .core.api import AsyncClient, AsyncResult, Client, OpenAI
from .core.context import ContextBuffer, ContextEntry
from .core.errors import (
    APIError,
    AuthenticationError,
    ErrorKind,
    GenericError,
    NetworkError,
    OpenAIError,
    RateLimitError,
    ValidationError,
)
from .core.streaming import Stream, iter_events
from .core.transport import RetryPolicy, exponential_delay, is_retryable_error

__version__ = "1.0.0"

__all__ = [
    "Client",
    "OpenAI",
    "AsyncClient",
    "AsyncResult",
    "ClientOptions",
    "LoggingOptions",
    "RetryPolicy",
    "exponential_delay",
    "is_retryable_error",
    "ContextBuffer",
    "ContextEntry",
    "Stream",
    "iter_events",
    "ErrorKind",
    "OpenAIError",
    "ValidationError",
    "AuthenticationError",
    "RateLimitError",
    "APIError",
    "NetworkError",
    "GenericError",
]
