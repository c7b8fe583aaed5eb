"""
Job-related data models for the Query Service client

Defines query job and statement states and the immutable status snapshots
returned by the service.
"""

from enum import Enum
from typing import Optional, Dict, Any, List, Tuple
from dataclasses import dataclass, field

from ..core.exceptions import FailedStatement


class JobState(Enum):
    """Query job state enumeration."""
    CREATED = "created"
    ENQUEUED = "enqueued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_JOB_STATES


class StatementState(Enum):
    """Statement execution state enumeration."""
    WAITING = "waiting"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"
    NOT_EXECUTED = "notExecuted"


class ActorType(Enum):
    """Who submitted the query job."""
    USER = "user"
    SYSTEM = "system"


TERMINAL_JOB_STATES = frozenset({JobState.COMPLETED, JobState.FAILED, JobState.CANCELED})


def is_terminal_state(state: JobState) -> bool:
    """Check if a job state is terminal (no further transitions)."""
    return state in TERMINAL_JOB_STATES


@dataclass(frozen=True)
class Statement:
    """A SQL statement within a query job."""

    id: str
    query: str
    status: StatementState

    query_id: Optional[str] = None
    session_id: Optional[str] = None
    error: Optional[str] = None

    # Row counts
    rows_affected: Optional[int] = None
    number_of_rows: Optional[int] = None

    # Timestamps as sent by the service
    created_at: Optional[str] = None
    executed_at: Optional[str] = None
    completed_at: Optional[str] = None

    @classmethod
    def _fields_from_dict(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": data["id"],
            "query": data.get("query", ""),
            "status": StatementState(data["status"]),
            "query_id": data.get("queryId"),
            "session_id": data.get("sessionId"),
            "error": data.get("error"),
            "rows_affected": data.get("rowsAffected"),
            "number_of_rows": data.get("numberOfRows"),
            "created_at": data.get("createdAt"),
            "executed_at": data.get("executedAt"),
            "completed_at": data.get("completedAt"),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Statement":
        """Create statement from a service payload."""
        return cls(**cls._fields_from_dict(data))

    def to_dict(self) -> Dict[str, Any]:
        """Convert statement to dictionary for serialization."""
        return {
            "id": self.id,
            "query": self.query,
            "status": self.status.value,
            "query_id": self.query_id,
            "session_id": self.session_id,
            "error": self.error,
            "rows_affected": self.rows_affected,
            "number_of_rows": self.number_of_rows,
            "created_at": self.created_at,
            "executed_at": self.executed_at,
            "completed_at": self.completed_at
        }


@dataclass(frozen=True)
class JobStatus:
    """Snapshot of a query job as returned by one status fetch."""

    query_job_id: str
    status: JobState
    actor_type: ActorType = ActorType.USER
    statements: Tuple[Statement, ...] = field(default_factory=tuple)

    created_at: Optional[str] = None
    changed_at: Optional[str] = None

    # Cancellation
    canceled_at: Optional[str] = None
    cancellation_reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def failed_statements(self) -> List[FailedStatement]:
        """Get failed statements in the order the service stores them."""
        return [
            FailedStatement(id=s.id, error=s.error)
            for s in self.statements
            if s.status == StatementState.FAILED
        ]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobStatus":
        """Create job status from a service payload."""
        return cls(
            query_job_id=data["queryJobId"],
            status=JobState(data["status"]),
            actor_type=ActorType(data.get("actorType", ActorType.USER.value)),
            statements=tuple(Statement.from_dict(s) for s in data.get("statements", [])),
            created_at=data.get("createdAt"),
            changed_at=data.get("changedAt"),
            canceled_at=data.get("canceledAt"),
            cancellation_reason=data.get("cancellationReason")
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert job status to dictionary for serialization."""
        return {
            "query_job_id": self.query_job_id,
            "status": self.status.value,
            "actor_type": self.actor_type.value,
            "statements": [s.to_dict() for s in self.statements],
            "created_at": self.created_at,
            "changed_at": self.changed_at,
            "canceled_at": self.canceled_at,
            "cancellation_reason": self.cancellation_reason
        }
