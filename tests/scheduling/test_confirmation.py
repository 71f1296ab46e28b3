"""Tests for slot confirmation."""

import threading
from collections.abc import Callable
from pathlib import Path

import pytest

from intask.audit import AuditFilter, EventType
from intask.scheduling import (
    Application,
    ApplicationStatus,
    AuthorizationError,
    ConflictError,
    InterviewSlot,
    NotFoundError,
    ReadinessGate,
    SchedulingError,
    SlotConfirmationService,
    SlotProposalService,
    SlotStatus,
    SlotStore,
    StateError,
    TrainingProgress,
)
from intask.types import Actor, Role

MakeSlots = Callable[..., list[dict[str, object]]]


@pytest.fixture
def service(store: SlotStore) -> SlotConfirmationService:
    return SlotConfirmationService(store)


@pytest.fixture
def posted(
    store: SlotStore, application: Application, admin: Actor, make_slots: MakeSlots
) -> list[InterviewSlot]:
    return SlotProposalService(store).post_slots_bulk(
        application.owner_ref(), make_slots(0, 2, 4), admin
    )


class TestConfirm:
    """Test SlotConfirmationService.confirm."""

    def test_candidate_confirms(
        self,
        service: SlotConfirmationService,
        store: SlotStore,
        posted: list[InterviewSlot],
        applicant: Actor,
    ) -> None:
        confirmed = service.confirm(posted[1].id, applicant)
        assert confirmed.status == SlotStatus.CONFIRMED
        assert confirmed.confirmed_by_role == Role.APPLICANT
        statuses = [s.status for s in store.get_slots("app-1")]
        assert statuses == [SlotStatus.SUPERSEDED, SlotStatus.CONFIRMED, SlotStatus.SUPERSEDED]
        assert store.get_application("app-1").status == ApplicationStatus.INTERVIEW_SCHEDULED

    def test_reviewer_confirms(
        self, service: SlotConfirmationService, posted: list[InterviewSlot], lead: Actor
    ) -> None:
        confirmed = service.confirm(posted[0].id, lead)
        assert confirmed.confirmed_by_role == Role.CHAPTER_LEAD

    def test_writes_event(
        self,
        service: SlotConfirmationService,
        store: SlotStore,
        posted: list[InterviewSlot],
        applicant: Actor,
    ) -> None:
        service.confirm(posted[0].id, applicant)
        (event,) = store.query_events(AuditFilter(event_type=EventType.SLOT_CONFIRMED))
        assert event.subject_id == posted[0].id
        assert event.actor_role == Role.APPLICANT

    def test_second_confirm_conflicts(
        self,
        service: SlotConfirmationService,
        posted: list[InterviewSlot],
        applicant: Actor,
        admin: Actor,
    ) -> None:
        service.confirm(posted[0].id, applicant)
        with pytest.raises(ConflictError, match="Refresh and try again"):
            service.confirm(posted[2].id, admin)

    def test_reconfirm_same_slot_conflicts(
        self, service: SlotConfirmationService, posted: list[InterviewSlot], applicant: Actor
    ) -> None:
        service.confirm(posted[0].id, applicant)
        with pytest.raises(ConflictError, match="already confirmed"):
            service.confirm(posted[0].id, applicant)

    def test_unknown_slot(self, service: SlotConfirmationService, admin: Actor) -> None:
        with pytest.raises(NotFoundError):
            service.confirm("nope", admin)

    def test_stranger_cannot_confirm(
        self, service: SlotConfirmationService, posted: list[InterviewSlot], instructor: Actor
    ) -> None:
        with pytest.raises(AuthorizationError):
            service.confirm(posted[0].id, instructor)

    def test_lead_outside_chapter(
        self, service: SlotConfirmationService, posted: list[InterviewSlot], other_lead: Actor
    ) -> None:
        with pytest.raises(AuthorizationError):
            service.confirm(posted[0].id, other_lead)

    def test_closed_application(
        self,
        service: SlotConfirmationService,
        store: SlotStore,
        application: Application,
        posted: list[InterviewSlot],
        applicant: Actor,
    ) -> None:
        store.save_application(
            application.model_copy(update={"status": ApplicationStatus.REJECTED})
        )
        with pytest.raises(StateError):
            service.confirm(posted[0].id, applicant)
        assert store.get_slot(posted[0].id).status == SlotStatus.PROPOSED

    def test_gate_with_incomplete_training(
        self,
        service: SlotConfirmationService,
        store: SlotStore,
        gate: ReadinessGate,
        admin: Actor,
        instructor: Actor,
        make_slots: MakeSlots,
    ) -> None:
        """Training that regresses after posting blocks confirmation."""
        (slot,) = SlotProposalService(store).post_slots_bulk(
            gate.owner_ref(), make_slots(0), admin
        )
        store.save_training_progress(
            TrainingProgress(
                instructor_id=gate.instructor_id, required_modules=5, completed_modules=2
            )
        )
        with pytest.raises(StateError, match="blocked"):
            service.confirm(slot.id, instructor)
        assert store.get_slot(slot.id).status == SlotStatus.PROPOSED


class TestConcurrentConfirm:
    """Two writers racing to confirm different slots of one owner."""

    def test_exactly_one_wins(
        self,
        db_path: Path,
        store: SlotStore,
        gate: ReadinessGate,
        admin: Actor,
        instructor: Actor,
        make_slots: MakeSlots,
    ) -> None:
        slots = SlotProposalService(store).post_slots_bulk(
            gate.owner_ref(), make_slots(0, 2), admin
        )
        barrier = threading.Barrier(2)
        results: dict[str, str] = {}

        def confirm(slot_id: str, actor: Actor) -> None:
            with SlotStore(db_path, busy_timeout=10.0) as own_store:
                barrier.wait()
                try:
                    SlotConfirmationService(own_store).confirm(slot_id, actor)
                    results[slot_id] = "confirmed"
                except SchedulingError as e:
                    results[slot_id] = type(e).__name__

        threads = [
            threading.Thread(target=confirm, args=(slots[0].id, instructor)),
            threading.Thread(target=confirm, args=(slots[1].id, admin)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(results.values()) == ["ConflictError", "confirmed"]
        statuses = sorted(s.status.value for s in store.get_slots(gate.id))
        assert statuses == ["confirmed", "superseded"]
