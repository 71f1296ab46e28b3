"""Audit event models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from intask.types import Actor, OwnerKind, OwnerRef, Role


class EventType(StrEnum):
    """Event types for the scheduling audit trail."""

    SLOTS_POSTED = "slots_posted"
    SLOT_CONFIRMED = "slot_confirmed"
    REQUEST_SUBMITTED = "request_submitted"
    REQUEST_ACCEPTED = "request_accepted"
    REQUEST_DECLINED = "request_declined"
    REQUEST_CANCELLED = "request_cancelled"
    INTERVIEW_COMPLETED = "interview_completed"
    NOTE_SAVED = "note_saved"
    OUTCOME_SET = "outcome_set"
    OUTCOME_WAIVED = "outcome_waived"
    RECORDS_IMPORTED = "records_imported"


class AuditEvent(BaseModel):
    """Single audit event.

    Records one successful state change with the acting user and the owner it
    touched. Written in the same transaction as the change itself.
    """

    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    actor_id: str
    actor_role: Role
    owner_kind: OwnerKind | None = None
    owner_id: str | None = None
    subject_id: str | None = None
    metadata: dict[str, object] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def for_actor(
        cls,
        actor: Actor,
        event_type: EventType,
        owner: OwnerRef | None = None,
        subject_id: str | None = None,
        metadata: dict[str, object] | None = None,
    ) -> AuditEvent:
        """Build an event attributed to the acting user."""
        return cls(
            event_type=event_type,
            actor_id=actor.user_id,
            actor_role=actor.role,
            owner_kind=owner.kind if owner is not None else None,
            owner_id=owner.id if owner is not None else None,
            subject_id=subject_id,
            metadata=metadata or {},
        )
