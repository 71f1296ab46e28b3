"""Interview completion — terminal outcomes for both pipelines.

Completion is the only path that moves a CONFIRMED slot to COMPLETED or writes
an outcome. Recording an outcome also closes the owner out: leftover PROPOSED
slots are cancelled and PENDING availability requests are declined, so nothing
can be scheduled against a decided interview.
"""

from __future__ import annotations

import pydantic

from intask.audit.models import AuditEvent, EventType
from intask.scheduling.base import (
    AuthorizationError,
    HasOutcome,
    NotFoundError,
    StateError,
    ValidationError,
)
from intask.scheduling.guards import require_open, require_prerequisites, require_reviewer
from intask.scheduling.models import (
    GateOutcome,
    HiringOutcome,
    InterviewOutcome,
    InterviewSlot,
    ReadinessOutcome,
    Recommendation,
    SlotStatus,
)
from intask.scheduling.store import SlotStore
from intask.types import Actor, OwnerRef

FINALIZED_NOTE = "Interview finalized."


def _hiring_outcome(**fields: object) -> HiringOutcome:
    try:
        return HiringOutcome.model_validate(fields)
    except pydantic.ValidationError as e:
        fields_in_error = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
        raise ValidationError(f"Invalid interview note ({fields_in_error})") from e


def _gate_outcome(raw: GateOutcome | str) -> GateOutcome:
    try:
        return GateOutcome(str(raw).lower())
    except ValueError:
        allowed = ", ".join(o.value.upper() for o in GateOutcome)
        raise ValidationError(
            f"Invalid interview outcome {raw!r}; expected one of {allowed}"
        ) from None


class InterviewCompletionService:
    """Records terminal outcomes and drives owner status transitions."""

    def __init__(self, store: SlotStore) -> None:
        self.store = store

    def _confirmed_slot(self, owner: OwnerRef, slot_id: str | None) -> InterviewSlot:
        if slot_id is None:
            slot = self.store.active_slot(owner)
            if slot is None or slot.status != SlotStatus.CONFIRMED:
                raise StateError("A confirmed interview slot is required to record this outcome")
            return slot
        slot = self.store.get_slot(slot_id)
        if slot.owner != owner:
            raise NotFoundError(f"Interview slot {slot_id} not found for {owner}")
        if slot.status != SlotStatus.CONFIRMED:
            raise StateError(
                f"Only a confirmed interview slot can be completed (slot is {slot.status.value})"
            )
        return slot

    def _close_out(self, owner: OwnerRef, actor: Actor, cancel_confirmed: bool = False) -> None:
        for slot in self.store.get_slots(owner.id, owner.kind):
            if slot.status == SlotStatus.PROPOSED or (
                cancel_confirmed and slot.status == SlotStatus.CONFIRMED
            ):
                self.store.transition_slot(slot.id, slot.status, SlotStatus.CANCELLED)
        self.store.decline_pending_requests(
            owner, reviewed_by=actor.user_id, review_notes=FINALIZED_NOTE
        )

    def _finish(
        self,
        record: HasOutcome,
        outcome: InterviewOutcome,
        actor: Actor,
        event_type: EventType,
    ) -> None:
        self.store.write_outcome(outcome)
        self.store.set_owner_status(outcome.owner, record.status_after_outcome(outcome.value))
        self.store.write_event(
            AuditEvent.for_actor(
                actor,
                event_type,
                owner=outcome.owner,
                subject_id=outcome.slot_id,
                metadata={"outcome": outcome.value},
            )
        )

    def complete_hiring(
        self,
        application_id: str,
        slot_id: str,
        recommendation: Recommendation | str,
        content: str,
        completed_by: Actor,
        strengths: str | None = None,
        concerns: str | None = None,
    ) -> HiringOutcome:
        """Complete a confirmed hiring interview and save the recommendation.

        Raises:
            ValidationError: Unknown recommendation or empty content
            NotFoundError: Unknown application, or slot not owned by it
            AuthorizationError: Actor is not a reviewer for the application
            StateError: Already completed, a prerequisite is unmet, or the slot is not CONFIRMED
        """
        with self.store.transaction():
            application = self.store.get_application(application_id)
            require_reviewer(completed_by, application)
            require_open(self.store, application)
            require_prerequisites(self.store, application)
            ref = application.owner_ref()
            slot = self._confirmed_slot(ref, slot_id)
            outcome = _hiring_outcome(
                application_id=application_id,
                slot_id=slot.id,
                recommendation=str(recommendation).lower(),
                content=content.strip(),
                strengths=strengths or None,
                concerns=concerns or None,
                recorded_by=completed_by.user_id,
            )
            self.store.transition_slot(slot.id, SlotStatus.CONFIRMED, SlotStatus.COMPLETED)
            self._close_out(ref, completed_by)
            self._finish(application, outcome, completed_by, EventType.INTERVIEW_COMPLETED)
        return outcome

    def save_structured_note(
        self,
        application_id: str,
        recommendation: Recommendation | str,
        content: str,
        saved_by: Actor,
        strengths: str | None = None,
        concerns: str | None = None,
    ) -> HiringOutcome:
        """Record a hiring outcome without a scheduled interview.

        Used when the position does not require an interview or the conversation
        happened outside the scheduler. Refused while a confirmed slot exists,
        since that interview must be completed through complete_hiring.
        """
        with self.store.transaction():
            application = self.store.get_application(application_id)
            require_reviewer(saved_by, application)
            require_open(self.store, application)
            require_prerequisites(self.store, application)
            ref = application.owner_ref()
            if self.store.active_slot(ref) is not None:
                raise StateError(
                    "This application has a confirmed interview; complete it to save the note"
                )
            outcome = _hiring_outcome(
                application_id=application_id,
                recommendation=str(recommendation).lower(),
                content=content.strip(),
                strengths=strengths or None,
                concerns=concerns or None,
                recorded_by=saved_by.user_id,
            )
            self._close_out(ref, saved_by)
            self._finish(application, outcome, saved_by, EventType.NOTE_SAVED)
        return outcome

    def complete_readiness(
        self,
        gate_id: str,
        outcome: GateOutcome | str,
        completed_by: Actor,
        slot_id: str | None = None,
        review_notes: str | None = None,
    ) -> ReadinessOutcome:
        """Set the readiness outcome for an instructor gate.

        WAIVE needs no slot and is accepted from any open state, but only from
        an admin; it cancels whatever is still scheduled. PASS, HOLD and FAIL
        complete the gate's CONFIRMED slot.

        Raises:
            ValidationError: Unknown outcome value
            NotFoundError: Unknown gate, or slot not owned by it
            AuthorizationError: Not a reviewer, or WAIVE by a non-admin
            StateError: Already completed, or for PASS/HOLD/FAIL an unmet prerequisite
                or no CONFIRMED slot
        """
        decision = _gate_outcome(outcome)
        with self.store.transaction():
            gate = self.store.get_gate(gate_id)
            require_reviewer(completed_by, gate)
            if decision == GateOutcome.WAIVE and not completed_by.is_admin:
                raise AuthorizationError("Only admins can waive interview outcomes")
            require_open(self.store, gate)
            if decision != GateOutcome.WAIVE:
                require_prerequisites(self.store, gate)
            ref = gate.owner_ref()

            if decision == GateOutcome.WAIVE:
                completed_slot_id = None
                self._close_out(ref, completed_by, cancel_confirmed=True)
                event_type = EventType.OUTCOME_WAIVED
            else:
                slot = self._confirmed_slot(ref, slot_id)
                self.store.transition_slot(slot.id, SlotStatus.CONFIRMED, SlotStatus.COMPLETED)
                completed_slot_id = slot.id
                self._close_out(ref, completed_by)
                event_type = EventType.OUTCOME_SET

            result = ReadinessOutcome(
                gate_id=gate_id,
                slot_id=completed_slot_id,
                outcome=decision,
                review_notes=(review_notes or "").strip() or None,
                recorded_by=completed_by.user_id,
            )
            self._finish(gate, result, completed_by, event_type)
        return result
