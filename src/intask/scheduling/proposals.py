"""Reviewer-posted interview slot proposals."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta

import pydantic

from intask.audit.models import AuditEvent, EventType
from intask.scheduling.base import ConflictError, ValidationError
from intask.scheduling.guards import require_open, require_prerequisites, require_reviewer
from intask.scheduling.models import MAX_SLOTS_PER_POST, InterviewSlot, SlotSpec
from intask.scheduling.store import SlotStore
from intask.types import Actor, OwnerRef

FOLLOW_UP_OFFSETS_HOURS = (2, 4)


def parse_slot_spec(raw: SlotSpec | Mapping[str, object]) -> SlotSpec:
    """Validate one slot spec, translating pydantic errors into ValidationError."""
    if isinstance(raw, SlotSpec):
        return raw
    try:
        return SlotSpec.model_validate(raw)
    except pydantic.ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'slot'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Invalid interview slot ({problems})") from e


def parse_slot_specs(raw: Sequence[SlotSpec | Mapping[str, object]]) -> list[SlotSpec]:
    """Validate a bulk post: 1-3 entries, each parseable.

    Raises:
        ValidationError: On a bad count or any malformed entry (nothing is written)
    """
    if not 1 <= len(raw) <= MAX_SLOTS_PER_POST:
        raise ValidationError(
            f"Provide between 1 and {MAX_SLOTS_PER_POST} interview slots, got {len(raw)}"
        )
    return [parse_slot_spec(entry) for entry in raw]


def suggest_follow_up_times(first: datetime) -> list[datetime]:
    """Pre-fill helper for bulk forms: the given time plus +2h and +4h.

    The service never calls this; callers submit explicit timestamps.
    """
    return [first] + [first + timedelta(hours=h) for h in FOLLOW_UP_OFFSETS_HOURS]


class SlotProposalService:
    """Lets a reviewer post 1-3 candidate interview times for an owner."""

    def __init__(self, store: SlotStore) -> None:
        self.store = store

    def post_slots_bulk(
        self,
        owner: OwnerRef,
        slots: Sequence[SlotSpec | Mapping[str, object]],
        proposed_by: Actor,
    ) -> list[InterviewSlot]:
        """Create all slots as PROPOSED, or none of them.

        Args:
            owner: Application or readiness gate receiving the slots
            slots: 1-3 entries of scheduled_at, duration_minutes, meeting_link
            proposed_by: Reviewer posting the slots

        Returns:
            The created slots in the order given

        Raises:
            ValidationError: Bad slot count, timestamp, or duration
            NotFoundError: Unknown owner
            AuthorizationError: Actor is not a reviewer for this owner
            StateError: Owner already has an outcome, or a prerequisite is unmet
            ConflictError: Owner already has a confirmed interview
        """
        specs = parse_slot_specs(slots)
        with self.store.transaction():
            record = self.store.get_owner(owner)
            require_reviewer(proposed_by, record)
            require_open(self.store, record)
            require_prerequisites(self.store, record)
            if self.store.active_slot(owner) is not None:
                raise ConflictError(
                    "An interview is already confirmed. Refresh before posting new times."
                )
            created = self.store.create_slots(owner, specs, proposed_by.role)
            self.store.write_event(
                AuditEvent.for_actor(
                    proposed_by,
                    EventType.SLOTS_POSTED,
                    owner=owner,
                    metadata={"slot_ids": [s.id for s in created]},
                )
            )
        return created
