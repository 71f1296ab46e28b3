"""Audit query filter for building parameterized SQL queries."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel

from intask.audit.models import EventType
from intask.types import OwnerKind


def _utc_bound(value: datetime) -> str:
    # Stored timestamps are UTC ISO strings; naive bounds are read as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC).isoformat()
    return value.astimezone(UTC).isoformat()


class AuditFilter(BaseModel):
    """Filter criteria for querying audit events.

    Builds parameterized SQL WHERE clauses (safe from injection).
    """

    event_type: EventType | None = None
    actor_id: str | None = None
    owner_kind: OwnerKind | None = None
    owner_id: str | None = None
    subject_id: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    limit: int | None = None

    def to_sql(self) -> tuple[str, list[object]]:
        """Build a WHERE clause with parameterized values.

        Returns:
            Tuple of (SQL string starting with WHERE, list of parameter values)
        """
        conditions: list[str] = []
        params: list[object] = []

        if self.event_type is not None:
            conditions.append("event_type = ?")
            params.append(self.event_type.value)

        if self.actor_id is not None:
            conditions.append("actor_id = ?")
            params.append(self.actor_id)

        if self.owner_kind is not None:
            conditions.append("owner_kind = ?")
            params.append(self.owner_kind.value)

        if self.owner_id is not None:
            conditions.append("owner_id = ?")
            params.append(self.owner_id)

        if self.subject_id is not None:
            conditions.append("subject_id = ?")
            params.append(self.subject_id)

        if self.start_time is not None:
            conditions.append("timestamp >= ?")
            params.append(_utc_bound(self.start_time))

        if self.end_time is not None:
            conditions.append("timestamp <= ?")
            params.append(_utc_bound(self.end_time))

        where = " AND ".join(conditions) if conditions else "1=1"
        return f"WHERE {where}", params

    def limit_clause(self) -> tuple[str, list[object]]:
        """Build LIMIT clause if limit is set."""
        if self.limit is not None:
            return "LIMIT ?", [self.limit]
        return "", []
