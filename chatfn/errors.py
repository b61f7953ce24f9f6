"""
chatfn Errors - Error kinds and exception hierarchy

Setup failures (bad schemas, bad handlers, bad client config) and classified
completion failures are raised as exceptions. Function execution failures are
never raised: they travel inside an ExecutionResult. The orchestrator folds
everything into a ProcessResult envelope.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Closed set of error kinds surfaced to callers"""

    # Registry setup
    SCHEMA_ERROR = "SCHEMA_ERROR"
    HANDLER_ERROR = "HANDLER_ERROR"

    # Registry execution
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    EXECUTION_ERROR = "EXECUTION_ERROR"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"

    # Completion client
    AUTH_ERROR = "AUTH_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    BAD_REQUEST_ERROR = "BAD_REQUEST_ERROR"
    MODEL_NOT_FOUND = "MODEL_NOT_FOUND"
    NETWORK_ERROR = "NETWORK_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    REQUEST_FAILED = "REQUEST_FAILED"

    # Orchestrator
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_ROLE = "INVALID_ROLE"
    INVALID_CONTENT = "INVALID_CONTENT"
    FUNCTION_EXECUTION_ERROR = "FUNCTION_EXECUTION_ERROR"
    PROCESSING_ERROR = "PROCESSING_ERROR"
    TOO_MANY_FUNCTION_CALLS = "TOO_MANY_FUNCTION_CALLS"
    CONVERSATION_BUSY = "CONVERSATION_BUSY"


class ChatfnError(Exception):
    """Base class for all chatfn exceptions."""

    kind: ErrorKind = ErrorKind.PROCESSING_ERROR

    def __init__(
        self,
        message: str,
        kind: Optional[ErrorKind] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.details: Dict[str, Any] = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            **self.details,
        }


# ---------------------------------------------------------------------------
# Registry setup
# ---------------------------------------------------------------------------

class SchemaError(ChatfnError, ValueError):
    """Raised when a function schema is missing or malformed."""

    kind = ErrorKind.SCHEMA_ERROR


class HandlerError(ChatfnError, TypeError):
    """Raised when a function handler is missing or not callable."""

    kind = ErrorKind.HANDLER_ERROR


# ---------------------------------------------------------------------------
# Completion client
# ---------------------------------------------------------------------------

class CompletionError(ChatfnError):
    """A classified failure from the completion endpoint.

    Attributes:
        status_code: HTTP status reported by the provider, if any
        retryable: Whether the retry policy may try again
        attempts: How many attempts were made before this error surfaced
    """

    kind = ErrorKind.REQUEST_FAILED
    retryable: bool = False

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retryable: Optional[bool] = None,
        kind: Optional[ErrorKind] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, kind=kind, details=details)
        self.status_code = status_code
        if retryable is not None:
            self.retryable = retryable
        self.attempts = 0

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["status_code"] = self.status_code
        data["retryable"] = self.retryable
        data["attempts"] = self.attempts
        return data


class AuthError(CompletionError):
    kind = ErrorKind.AUTH_ERROR


class BadRequestError(CompletionError):
    kind = ErrorKind.BAD_REQUEST_ERROR


class ModelNotFoundError(CompletionError):
    kind = ErrorKind.MODEL_NOT_FOUND


class RateLimitError(CompletionError):
    kind = ErrorKind.RATE_LIMIT_ERROR
    retryable = True


class ServerError(CompletionError):
    kind = ErrorKind.SERVER_ERROR
    retryable = True


class NetworkError(CompletionError):
    kind = ErrorKind.NETWORK_ERROR
    retryable = True


class RequestFailedError(CompletionError):
    kind = ErrorKind.REQUEST_FAILED


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class ConversationError(ChatfnError):
    """Base class for conversation-level failures."""


class InvalidInputError(ConversationError, ValueError):
    kind = ErrorKind.INVALID_INPUT


class InvalidRoleError(ConversationError, ValueError):
    kind = ErrorKind.INVALID_ROLE


class InvalidContentError(ConversationError, TypeError):
    kind = ErrorKind.INVALID_CONTENT


class ConversationBusyError(ConversationError, RuntimeError):
    """Raised when the transcript is mutated while a turn is in flight."""

    kind = ErrorKind.CONVERSATION_BUSY


class FunctionExecutionError(ConversationError):
    """A function round failed and the model could not be consulted afterwards."""

    kind = ErrorKind.FUNCTION_EXECUTION_ERROR


class TooManyFunctionCallsError(ConversationError):
    kind = ErrorKind.TOO_MANY_FUNCTION_CALLS
