"""
Core package for the Query Service client

Contains the Client facade and the error taxonomy.
"""

from .client import Client
from .exceptions import (
    ErrorKind,
    QueryServiceError,
    AuthenticationError,
    ValidationError,
    NotFoundError,
    JobError,
    JobTimeoutError,
    FailedStatement,
    ConfigurationError,
    error_from_response
)

__all__ = [
    "Client",
    "ErrorKind",
    "QueryServiceError",
    "AuthenticationError",
    "ValidationError",
    "NotFoundError",
    "JobError",
    "JobTimeoutError",
    "FailedStatement",
    "ConfigurationError",
    "error_from_response"
]
