"""
Result and history data models for the Query Service client
"""

from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field

from .job import Statement, StatementState


@dataclass(frozen=True)
class Column:
    """Column metadata from query results."""

    name: str
    type: str
    nullable: bool = True
    length: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Column":
        return cls(
            name=data["name"],
            type=data["type"],
            nullable=data.get("nullable", True),
            length=data.get("length")
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "nullable": self.nullable,
            "length": self.length
        }


@dataclass(frozen=True)
class QueryResult:
    """One page of results for a statement. Row values are kept exactly as sent."""

    status: StatementState
    columns: List[Column] = field(default_factory=list)
    data: List[List[Any]] = field(default_factory=list)
    rows_affected: Optional[int] = None
    number_of_rows: Optional[int] = None
    message: Optional[str] = None

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueryResult":
        """Create query result from a service payload."""
        return cls(
            status=StatementState(data["status"]),
            columns=[Column.from_dict(c) for c in data.get("columns", [])],
            data=data.get("data", []),
            rows_affected=data.get("rowsAffected"),
            number_of_rows=data.get("numberOfRows"),
            message=data.get("message")
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "columns": [c.to_dict() for c in self.columns],
            "data": self.data,
            "rows_affected": self.rows_affected,
            "number_of_rows": self.number_of_rows,
            "message": self.message
        }


@dataclass(frozen=True)
class HistoryStatement(Statement):
    """Statement with the job and backend it ran on, as listed in query history."""

    query_job_id: Optional[str] = None
    warehouse: Optional[str] = None
    backend_size: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryStatement":
        fields = cls._fields_from_dict(data)
        fields.update(
            query_job_id=data.get("queryJobId"),
            warehouse=data.get("warehouse"),
            backend_size=data.get("backendSize")
        )
        return cls(**fields)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "query_job_id": self.query_job_id,
            "warehouse": self.warehouse,
            "backend_size": self.backend_size
        })
        return data


@dataclass(frozen=True)
class QueryHistory:
    """One page of statement history for a workspace."""

    statements: List[HistoryStatement] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueryHistory":
        return cls(statements=[HistoryStatement.from_dict(s) for s in data.get("statements", [])])

    def to_dict(self) -> Dict[str, Any]:
        return {"statements": [s.to_dict() for s in self.statements]}
