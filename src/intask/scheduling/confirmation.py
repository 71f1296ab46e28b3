"""Slot confirmation — the single point where double-booking races resolve."""

from __future__ import annotations

from intask.audit.models import AuditEvent, EventType
from intask.scheduling.guards import require_open, require_participant, require_prerequisites
from intask.scheduling.models import InterviewSlot, SlotStatus
from intask.scheduling.store import SlotStore
from intask.types import Actor


class SlotConfirmationService:
    """Confirms exactly one proposed slot per owner."""

    def __init__(self, store: SlotStore) -> None:
        self.store = store

    def confirm(self, slot_id: str, confirmed_by: Actor) -> InterviewSlot:
        """Confirm a PROPOSED slot and supersede its siblings.

        Under concurrent calls for different slots of the same owner, the
        store's write lock lets exactly one compare-and-set through; the other
        callers find their slot SUPERSEDED and get a ConflictError.

        Args:
            slot_id: Slot to confirm
            confirmed_by: The candidate or a reviewer for the owner

        Returns:
            The confirmed slot

        Raises:
            NotFoundError: Unknown slot
            AuthorizationError: Actor is neither the candidate nor a reviewer
            StateError: Owner already has an outcome, or a prerequisite is unmet
            ConflictError: Slot no longer PROPOSED, or a sibling is confirmed
        """
        with self.store.transaction():
            slot = self.store.get_slot(slot_id)
            record = self.store.get_owner(slot.owner)
            require_participant(confirmed_by, record)
            require_open(self.store, record)
            require_prerequisites(self.store, record)
            confirmed = self.store.transition_slot(
                slot_id, SlotStatus.PROPOSED, SlotStatus.CONFIRMED, by_role=confirmed_by.role
            )
            self.store.set_owner_status(slot.owner, record.status_when_scheduled())
            self.store.write_event(
                AuditEvent.for_actor(
                    confirmed_by,
                    EventType.SLOT_CONFIRMED,
                    owner=slot.owner,
                    subject_id=slot_id,
                    metadata={"scheduled_at": confirmed.scheduled_at.isoformat()},
                )
            )
        return confirmed
