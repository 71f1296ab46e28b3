"""Interview commands — the operation surface shared by both pipelines.

Every mutating command runs one scheduling service call and then re-derives
the owner's task for the acting user, so callers always render fresh state.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime

from intask.config import HubConfig
from intask.scheduling import (
    AvailabilityRequestService,
    GateOutcome,
    InterviewCompletionService,
    NotFoundError,
    Recommendation,
    SlotConfirmationService,
    SlotProposalService,
    SlotSpec,
    SlotStore,
    ValidationError,
)
from intask.tasks import (
    InterviewTask,
    StateFilter,
    TaskScope,
    TaskView,
    list_interview_tasks,
    refresh_task,
)
from intask.types import Actor, OwnerKind, OwnerRef, Role

SlotInput = SlotSpec | Mapping[str, object]


class InterviewCommands:
    """Facade over the scheduling services.

    Args:
        store: Scheduling store
        config: Hub configuration (defaults are used when omitted)
    """

    def __init__(self, store: SlotStore, config: HubConfig | None = None) -> None:
        self.store = store
        self.config = config or HubConfig()
        self.proposals = SlotProposalService(store)
        self.requests = AvailabilityRequestService(store, self.config.max_pending_requests)
        self.confirmation = SlotConfirmationService(store)
        self.completion = InterviewCompletionService(store)

    def _task(self, ref: OwnerRef, actor: Actor) -> InterviewTask:
        return refresh_task(
            self.store, ref, actor.role, lead_hours=self.config.default_lead_hours
        )

    def _with_default_duration(self, slots: Sequence[SlotInput]) -> list[SlotInput]:
        filled: list[SlotInput] = []
        for slot in slots:
            if isinstance(slot, Mapping) and slot.get("duration_minutes") is None:
                slot = {**slot, "duration_minutes": self.config.default_duration_minutes}
            filled.append(slot)
        return filled

    # -- hiring -------------------------------------------------------------

    def post_application_interview_slots_bulk(
        self, application_id: str, slots: Sequence[SlotInput], actor: Actor
    ) -> InterviewTask:
        """Post 1-3 proposed interview times for an application."""
        ref = OwnerRef(kind=OwnerKind.APPLICATION, id=application_id)
        self.proposals.post_slots_bulk(ref, self._with_default_duration(slots), actor)
        return self._task(ref, actor)

    def confirm_interview_slot(self, slot_id: str, actor: Actor) -> InterviewTask:
        """Confirm one proposed slot; siblings are superseded."""
        slot = self.confirmation.confirm(slot_id, actor)
        return self._task(slot.owner, actor)

    def complete_application_interview_and_note(
        self,
        application_id: str,
        slot_id: str,
        recommendation: Recommendation | str,
        content: str,
        actor: Actor,
        strengths: str | None = None,
        concerns: str | None = None,
    ) -> InterviewTask:
        """Complete the confirmed interview and save the recommendation in one step."""
        self.completion.complete_hiring(
            application_id,
            slot_id,
            recommendation,
            content,
            actor,
            strengths=strengths,
            concerns=concerns,
        )
        return self._task(OwnerRef(kind=OwnerKind.APPLICATION, id=application_id), actor)

    def save_structured_interview_note(
        self,
        application_id: str,
        recommendation: Recommendation | str,
        content: str,
        actor: Actor,
        strengths: str | None = None,
        concerns: str | None = None,
    ) -> InterviewTask:
        """Record a recommendation for an application without a scheduled interview."""
        self.completion.save_structured_note(
            application_id,
            recommendation,
            content,
            actor,
            strengths=strengths,
            concerns=concerns,
        )
        return self._task(OwnerRef(kind=OwnerKind.APPLICATION, id=application_id), actor)

    # -- availability requests ----------------------------------------------

    def submit_interview_availability_request(
        self,
        preferred_windows: Sequence[datetime | str],
        actor: Actor,
        owner: OwnerRef | None = None,
        note: str | None = None,
    ) -> InterviewTask:
        """Submit preferred times.

        Without an explicit owner, an instructor's own readiness gate is used.

        Raises:
            NotFoundError: No owner given and the actor has no readiness gate
        """
        if owner is None:
            gate = self.store.find_gate_for_instructor(actor.user_id)
            if gate is None:
                raise NotFoundError("No readiness gate found for this instructor")
            owner = gate.owner_ref()
        self.requests.submit_request(owner, preferred_windows, actor, note=note)
        return self._task(owner, actor)

    def accept_interview_availability_request(
        self,
        request_id: str,
        scheduled_at: datetime | str,
        actor: Actor,
        duration_minutes: int | None = None,
        meeting_link: str | None = None,
    ) -> InterviewTask:
        """Accept a pending request and lock the interview time."""
        slot = self.requests.accept_request(
            request_id,
            scheduled_at,
            duration_minutes or self.config.default_duration_minutes,
            actor,
            meeting_link=meeting_link,
        )
        return self._task(slot.owner, actor)

    def decline_interview_availability_request(
        self, request_id: str, actor: Actor, review_notes: str | None = None
    ) -> InterviewTask:
        request = self.requests.decline_request(request_id, actor, review_notes=review_notes)
        return self._task(request.owner, actor)

    def cancel_interview_availability_request(
        self, request_id: str, actor: Actor
    ) -> InterviewTask:
        request = self.requests.cancel_request(request_id, actor)
        return self._task(request.owner, actor)

    # -- readiness ----------------------------------------------------------

    def post_instructor_interview_slots_bulk(
        self,
        instructor_id: str,
        gate_id: str,
        slots: Sequence[SlotInput],
        actor: Actor,
    ) -> InterviewTask:
        """Post 1-3 proposed interview times for an instructor's readiness gate.

        Raises:
            ValidationError: The gate does not belong to the instructor
        """
        gate = self.store.get_gate(gate_id)
        if gate.instructor_id != instructor_id:
            raise ValidationError("Readiness gate does not belong to this instructor")
        ref = gate.owner_ref()
        self.proposals.post_slots_bulk(ref, self._with_default_duration(slots), actor)
        return self._task(ref, actor)

    def confirm_posted_interview_slot(self, slot_id: str, actor: Actor) -> InterviewTask:
        """Confirm a posted readiness slot."""
        slot = self.confirmation.confirm(slot_id, actor)
        return self._task(slot.owner, actor)

    def complete_instructor_interview_and_set_outcome(
        self,
        gate_id: str,
        outcome: GateOutcome | str,
        actor: Actor,
        slot_id: str | None = None,
        review_notes: str | None = None,
    ) -> InterviewTask:
        """Set pass/hold/fail after the interview, or waive it (admins only)."""
        self.completion.complete_readiness(
            gate_id, outcome, actor, slot_id=slot_id, review_notes=review_notes
        )
        return self._task(OwnerRef(kind=OwnerKind.READINESS_GATE, id=gate_id), actor)

    # -- read side ----------------------------------------------------------

    def list_interview_tasks(
        self,
        for_role: Role,
        for_user_id: str,
        *,
        chapter_id: str | None = None,
        scope: TaskScope = TaskScope.ALL,
        state: StateFilter = StateFilter.ALL,
        view: TaskView | None = None,
        now: datetime | None = None,
    ) -> list[InterviewTask]:
        return list_interview_tasks(
            self.store,
            for_role,
            for_user_id,
            chapter_id=chapter_id,
            scope=scope,
            state=state,
            view=view,
            now=now,
            lead_hours=self.config.default_lead_hours,
        )
