"""
Query Service Client

An asynchronous Python client for the Query Service API, which executes SQL
statements against workspaces as asynchronous query jobs.

Key Features:
- Automatic retries with exponential backoff for transient failures
- Waiting for job completion with bounded, growing poll intervals
- Streaming results as newline-delimited JSON without buffering
- Typed errors for authentication, validation, missing resources and failed jobs
- Command-line interface

Usage:
    import asyncio
    from query_service import Client

    async def main():
        async with Client(base_url="https://query.example.com", token="...") as client:
            results = await client.execute_query(
                branch_id="1261313",
                workspace_id="2950146661",
                statements=["SELECT * FROM my_table LIMIT 10"]
            )

            for result in results:
                print("Columns:", result.column_names)
                print("Data:", result.data)

    asyncio.run(main())
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Client
from .core.client import Client

# Data models
from .models.job import ActorType, JobState, JobStatus, Statement, StatementState, is_terminal_state
from .models.results import Column, HistoryStatement, QueryHistory, QueryResult

# Configuration and utilities
from .utils.config import ClientConfig
from .utils.logger import setup_logger, get_logger

# Exceptions
from .core.exceptions import (
    ErrorKind,
    QueryServiceError,
    AuthenticationError,
    ValidationError,
    NotFoundError,
    JobError,
    JobTimeoutError,
    FailedStatement,
    ConfigurationError
)

__all__ = [
    # Client
    "Client",
    "ClientConfig",

    # Models
    "ActorType",
    "JobState",
    "JobStatus",
    "Statement",
    "StatementState",
    "Column",
    "QueryResult",
    "HistoryStatement",
    "QueryHistory",
    "is_terminal_state",

    # Utilities
    "setup_logger",
    "get_logger",

    # Exceptions
    "ErrorKind",
    "QueryServiceError",
    "AuthenticationError",
    "ValidationError",
    "NotFoundError",
    "JobError",
    "JobTimeoutError",
    "FailedStatement",
    "ConfigurationError",

    # Package metadata
    "__version__",
    "__license__"
]

# Package-level configuration
import logging
logging.getLogger(__name__).addHandler(logging.NullHandler())
