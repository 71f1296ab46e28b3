"""Tests for interview completion and outcomes."""

from collections.abc import Callable

import pytest

from intask.audit import AuditFilter, EventType
from intask.scheduling import (
    Application,
    ApplicationStatus,
    AuthorizationError,
    AvailabilityRequestService,
    ConflictError,
    GateOutcome,
    GateStatus,
    InterviewCompletionService,
    InterviewSlot,
    NotFoundError,
    ReadinessGate,
    Recommendation,
    RequestStatus,
    SlotConfirmationService,
    SlotProposalService,
    SlotStatus,
    SlotStore,
    StateError,
    TrainingProgress,
    ValidationError,
)
from intask.types import Actor

MakeSlots = Callable[..., list[dict[str, object]]]


@pytest.fixture
def service(store: SlotStore) -> InterviewCompletionService:
    return InterviewCompletionService(store)


def _post_and_confirm(
    store: SlotStore, owner: Application | ReadinessGate, reviewer: Actor, raw: list
) -> tuple[InterviewSlot, list[InterviewSlot]]:
    posted = SlotProposalService(store).post_slots_bulk(owner.owner_ref(), raw, reviewer)
    confirmed = SlotConfirmationService(store).confirm(posted[0].id, reviewer)
    return confirmed, posted


def _regress_training(store: SlotStore, gate: ReadinessGate) -> None:
    store.save_training_progress(
        TrainingProgress(instructor_id=gate.instructor_id, required_modules=5, completed_modules=2)
    )


class TestCompleteHiring:
    """Test InterviewCompletionService.complete_hiring."""

    def test_completes_and_saves_note(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        application: Application,
        lead: Actor,
        make_slots: MakeSlots,
    ) -> None:
        slot, _ = _post_and_confirm(store, application, lead, make_slots(0))
        outcome = service.complete_hiring(
            application.id,
            slot.id,
            "YES",
            "  Strong classroom presence  ",
            lead,
            strengths="Energy",
        )
        assert outcome.recommendation == Recommendation.YES
        assert outcome.content == "Strong classroom presence"
        assert outcome.slot_id == slot.id
        assert store.get_slot(slot.id).status == SlotStatus.COMPLETED
        assert store.get_outcome(application.owner_ref()) == outcome
        assert store.get_application(application.id).status == ApplicationStatus.INTERVIEW_COMPLETED
        (event,) = store.query_events(AuditFilter(event_type=EventType.INTERVIEW_COMPLETED))
        assert event.metadata == {"outcome": "yes"}

    def test_second_completion_is_state_error(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        application: Application,
        admin: Actor,
        make_slots: MakeSlots,
    ) -> None:
        slot, _ = _post_and_confirm(store, application, admin, make_slots(0))
        service.complete_hiring(application.id, slot.id, "maybe", "Unsure", admin)
        with pytest.raises(StateError, match="already completed"):
            service.complete_hiring(application.id, slot.id, "no", "Changed my mind", admin)

    def test_requires_confirmed_slot(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        application: Application,
        admin: Actor,
        make_slots: MakeSlots,
    ) -> None:
        (slot,) = SlotProposalService(store).post_slots_bulk(
            application.owner_ref(), make_slots(0), admin
        )
        with pytest.raises(StateError, match="proposed"):
            service.complete_hiring(application.id, slot.id, "yes", "Notes", admin)

    def test_slot_of_other_owner(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        application: Application,
        gate: ReadinessGate,
        admin: Actor,
        make_slots: MakeSlots,
    ) -> None:
        gate_slot, _ = _post_and_confirm(store, gate, admin, make_slots(0))
        with pytest.raises(NotFoundError):
            service.complete_hiring(application.id, gate_slot.id, "yes", "Notes", admin)

    def test_invalid_recommendation(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        application: Application,
        admin: Actor,
        make_slots: MakeSlots,
    ) -> None:
        slot, _ = _post_and_confirm(store, application, admin, make_slots(0))
        with pytest.raises(ValidationError, match="recommendation"):
            service.complete_hiring(application.id, slot.id, "definitely", "Notes", admin)
        assert store.get_slot(slot.id).status == SlotStatus.CONFIRMED

    def test_empty_content(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        application: Application,
        admin: Actor,
        make_slots: MakeSlots,
    ) -> None:
        slot, _ = _post_and_confirm(store, application, admin, make_slots(0))
        with pytest.raises(ValidationError, match="content"):
            service.complete_hiring(application.id, slot.id, "yes", "   ", admin)

    def test_candidate_cannot_complete(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        application: Application,
        admin: Actor,
        applicant: Actor,
        make_slots: MakeSlots,
    ) -> None:
        slot, _ = _post_and_confirm(store, application, admin, make_slots(0))
        with pytest.raises(AuthorizationError):
            service.complete_hiring(application.id, slot.id, "yes", "Self review", applicant)

    def test_blocked_before_screening(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        application: Application,
        admin: Actor,
        make_slots: MakeSlots,
    ) -> None:
        slot, _ = _post_and_confirm(store, application, admin, make_slots(0))
        store.save_application(
            application.model_copy(update={"status": ApplicationStatus.SUBMITTED})
        )
        with pytest.raises(StateError, match="blocked"):
            service.complete_hiring(application.id, slot.id, "yes", "Notes", admin)
        assert store.get_slot(slot.id).status == SlotStatus.CONFIRMED


class TestSaveStructuredNote:
    """Test the note-only hiring path."""

    def test_saves_without_slot(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        application: Application,
        admin: Actor,
        make_slots: MakeSlots,
    ) -> None:
        (proposed,) = SlotProposalService(store).post_slots_bulk(
            application.owner_ref(), make_slots(0), admin
        )
        outcome = service.save_structured_note(
            application.id, Recommendation.STRONG_YES, "Known to the team", admin
        )
        assert outcome.slot_id is None
        assert store.get_slot(proposed.id).status == SlotStatus.CANCELLED
        (event,) = store.query_events(AuditFilter(event_type=EventType.NOTE_SAVED))
        assert event.owner_id == application.id

    def test_refused_with_confirmed_interview(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        application: Application,
        admin: Actor,
        make_slots: MakeSlots,
    ) -> None:
        _post_and_confirm(store, application, admin, make_slots(0))
        with pytest.raises(StateError, match="confirmed interview"):
            service.save_structured_note(application.id, "yes", "Notes", admin)

    def test_refused_before_screening(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        application: Application,
        admin: Actor,
    ) -> None:
        store.save_application(
            application.model_copy(update={"status": ApplicationStatus.SUBMITTED})
        )
        with pytest.raises(StateError, match="initial screening"):
            service.save_structured_note(application.id, "yes", "Notes", admin)
        assert store.get_outcome(application.owner_ref()) is None


class TestCompleteReadiness:
    """Test InterviewCompletionService.complete_readiness."""

    @pytest.mark.parametrize(
        ("outcome", "status"),
        [("pass", GateStatus.PASSED), ("HOLD", GateStatus.HOLD), ("fail", GateStatus.FAILED)],
    )
    def test_outcome_sets_gate_status(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        gate: ReadinessGate,
        lead: Actor,
        make_slots: MakeSlots,
        outcome: str,
        status: GateStatus,
    ) -> None:
        slot, posted = _post_and_confirm(store, gate, lead, make_slots(0, 2))
        result = service.complete_readiness(gate.id, outcome, lead, review_notes="Solid")
        assert result.slot_id == slot.id
        assert store.get_gate(gate.id).status == status
        assert store.get_slot(slot.id).status == SlotStatus.COMPLETED
        assert store.get_slot(posted[1].id).status == SlotStatus.SUPERSEDED

    def test_pass_without_confirmed_slot(
        self,
        service: InterviewCompletionService,
        gate: ReadinessGate,
        admin: Actor,
    ) -> None:
        with pytest.raises(StateError, match="confirmed interview slot is required"):
            service.complete_readiness(gate.id, GateOutcome.PASS, admin)

    @pytest.mark.parametrize("outcome", ["pass", "hold", "fail"])
    def test_blocked_by_incomplete_training(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        gate: ReadinessGate,
        admin: Actor,
        make_slots: MakeSlots,
        outcome: str,
    ) -> None:
        slot, _ = _post_and_confirm(store, gate, admin, make_slots(0))
        _regress_training(store, gate)
        with pytest.raises(StateError, match="3 of 5 required training modules"):
            service.complete_readiness(gate.id, outcome, admin)
        assert store.get_slot(slot.id).status == SlotStatus.CONFIRMED
        assert store.get_outcome(gate.owner_ref()) is None

    def test_admin_waive_despite_incomplete_training(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        gate: ReadinessGate,
        admin: Actor,
    ) -> None:
        _regress_training(store, gate)
        result = service.complete_readiness(gate.id, "waive", admin)
        assert result.outcome == GateOutcome.WAIVE
        assert store.get_gate(gate.id).status == GateStatus.WAIVED

    def test_admin_waive_without_slot(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        gate: ReadinessGate,
        admin: Actor,
    ) -> None:
        result = service.complete_readiness(gate.id, "waive", admin, review_notes="Veteran")
        assert result.outcome == GateOutcome.WAIVE
        assert result.slot_id is None
        assert store.get_gate(gate.id).status == GateStatus.WAIVED
        (event,) = store.query_events(AuditFilter(event_type=EventType.OUTCOME_WAIVED))
        assert event.owner_id == gate.id

    def test_waive_cancels_confirmed_slot(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        gate: ReadinessGate,
        admin: Actor,
        make_slots: MakeSlots,
    ) -> None:
        slot, _ = _post_and_confirm(store, gate, admin, make_slots(0))
        service.complete_readiness(gate.id, "waive", admin)
        assert store.get_slot(slot.id).status == SlotStatus.CANCELLED
        assert store.active_slot(gate.owner_ref()) is None

    def test_lead_cannot_waive(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        gate: ReadinessGate,
        lead: Actor,
    ) -> None:
        with pytest.raises(AuthorizationError, match="Only admins"):
            service.complete_readiness(gate.id, "waive", lead)
        assert store.get_outcome(gate.owner_ref()) is None

    def test_declines_pending_requests(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        gate: ReadinessGate,
        admin: Actor,
        instructor: Actor,
    ) -> None:
        request = AvailabilityRequestService(store).submit_request(
            gate.owner_ref(), ["2026-03-04T15:00:00Z"], instructor
        )
        service.complete_readiness(gate.id, "waive", admin)
        declined = store.get_request(request.id)
        assert declined.status == RequestStatus.DECLINED
        assert declined.review_notes == "Interview finalized."

    def test_terminal_outcomes_final(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        gate: ReadinessGate,
        admin: Actor,
        make_slots: MakeSlots,
    ) -> None:
        """HOLD is terminal: no new slots, no second outcome."""
        _post_and_confirm(store, gate, admin, make_slots(0))
        service.complete_readiness(gate.id, "hold", admin)
        with pytest.raises(StateError):
            service.complete_readiness(gate.id, "waive", admin)
        with pytest.raises(StateError):
            SlotProposalService(store).post_slots_bulk(gate.owner_ref(), make_slots(4), admin)

    def test_invalid_outcome(
        self, service: InterviewCompletionService, gate: ReadinessGate, admin: Actor
    ) -> None:
        with pytest.raises(ValidationError, match="PASS, HOLD, FAIL, WAIVE"):
            service.complete_readiness(gate.id, "maybe", admin)

    def test_direct_outcome_write_conflicts(
        self,
        service: InterviewCompletionService,
        store: SlotStore,
        gate: ReadinessGate,
        admin: Actor,
    ) -> None:
        """The outcomes table backs up the guard against double completion."""
        result = service.complete_readiness(gate.id, "waive", admin)
        with pytest.raises(ConflictError):
            store.write_outcome(result)
