"""
Exception classes for the Query Service client

Every failure surfaced by the client is a QueryServiceError carrying an
ErrorKind discriminant, so callers can branch on ``error.kind`` (or on the
subclass) without matching on messages.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any, List, Sequence


class ErrorKind(Enum):
    """Closed set of error kinds raised by the client."""
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    VALIDATION = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    JOB_FAILED = "JOB_FAILED"
    JOB_TIMEOUT = "JOB_TIMEOUT"
    SERVICE = "SERVICE_ERROR"


class QueryServiceError(Exception):
    """Base exception for all Query Service errors."""

    kind = ErrorKind.SERVICE

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        exception_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.exception_id = exception_id
        self.context = context or {}

    @property
    def error_code(self) -> str:
        return self.kind.value

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "status_code": self.status_code,
            "exception_id": self.exception_id,
            "context": self.context
        }


class AuthenticationError(QueryServiceError):
    """Raised when the token is rejected (HTTP 401)."""

    kind = ErrorKind.AUTHENTICATION


class ValidationError(QueryServiceError):
    """Raised when the service rejects a malformed request (HTTP 400)."""

    kind = ErrorKind.VALIDATION


class NotFoundError(QueryServiceError):
    """Raised when a referenced job, statement or workspace does not exist (HTTP 404)."""

    kind = ErrorKind.NOT_FOUND


@dataclass(frozen=True)
class FailedStatement:
    """Identifier and error message of a statement that failed."""
    id: str
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "error": self.error}


class JobError(QueryServiceError):
    """Raised when a query job reaches the ``failed`` state."""

    kind = ErrorKind.JOB_FAILED

    def __init__(
        self,
        message: str,
        job_id: str,
        failed_statements: Sequence[FailedStatement] = (),
        **kwargs: Any
    ):
        super().__init__(message, **kwargs)
        self.job_id = job_id
        self.failed_statements: List[FailedStatement] = list(failed_statements)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["job_id"] = self.job_id
        data["failed_statements"] = [s.to_dict() for s in self.failed_statements]
        return data


class JobTimeoutError(QueryServiceError):
    """Raised when a job does not reach a terminal state before the deadline."""

    kind = ErrorKind.JOB_TIMEOUT

    def __init__(
        self,
        message: str,
        job_id: str,
        max_wait_time: Optional[float] = None,
        **kwargs: Any
    ):
        super().__init__(message, **kwargs)
        self.job_id = job_id
        self.max_wait_time = max_wait_time

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["job_id"] = self.job_id
        data["max_wait_time"] = self.max_wait_time
        return data


class ConfigurationError(ValueError):
    """Raised when client configuration is invalid."""

    def __init__(self, config_key: str, message: str):
        super().__init__(f"Configuration error for {config_key}: {message}")
        self.config_key = config_key


# Non-retryable status codes with a dedicated error kind
STATUS_ERRORS = {
    400: ValidationError,
    401: AuthenticationError,
    404: NotFoundError,
}


def parse_error_body(body_text: str) -> Dict[str, Any]:
    """Parse a service error body, returning an empty dict when it is not a JSON object."""
    try:
        data = json.loads(body_text)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def error_from_response(status_code: int, body_text: str) -> QueryServiceError:
    """
    Build the error matching an HTTP error response.

    Args:
        status_code: HTTP status code (>= 400)
        body_text: Raw response body

    Returns:
        QueryServiceError subclass for the status code
    """
    error_data = parse_error_body(body_text)
    message = error_data.get("exception") or body_text or f"HTTP {status_code}"
    context = error_data.get("context")

    error_class = STATUS_ERRORS.get(status_code, QueryServiceError)
    return error_class(
        message,
        status_code=status_code,
        exception_id=error_data.get("exceptionId"),
        context=context if isinstance(context, dict) else None
    )
