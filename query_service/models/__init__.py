"""
Data models for the Query Service client

Immutable snapshots of query jobs, statements, results and history as
returned by the service.
"""

# Job models
from .job import (
    JobState,
    StatementState,
    ActorType,
    Statement,
    JobStatus,
    TERMINAL_JOB_STATES,
    is_terminal_state
)

# Result models
from .results import (
    Column,
    QueryResult,
    HistoryStatement,
    QueryHistory
)

__all__ = [
    # Job models
    "JobState",
    "StatementState",
    "ActorType",
    "Statement",
    "JobStatus",
    "TERMINAL_JOB_STATES",
    "is_terminal_state",

    # Result models
    "Column",
    "QueryResult",
    "HistoryStatement",
    "QueryHistory"
]
