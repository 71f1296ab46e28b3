"""Tests for task derivation."""

from datetime import UTC, datetime, timedelta

import pytest

from intask.scheduling import (
    Application,
    ApplicationStatus,
    AvailabilityRequest,
    HiringOutcome,
    InterviewSlot,
    ReadinessGate,
    ReadinessOutcome,
    RequestStatus,
    SlotStatus,
    TrainingProgress,
)
from intask.tasks import (
    AcceptAvailabilityRequest,
    AddRecommendationNote,
    Audience,
    CompleteHiringInterview,
    CompleteReadinessInterview,
    ConfirmReadinessSlot,
    ConfirmSlot,
    OpenDetails,
    PostReadinessSlotsBulk,
    PostSlotsBulk,
    RequestAvailability,
    TaskStage,
    default_slot_time,
    derive_task,
    hiring_prerequisites,
    readiness_prerequisites,
)
from intask.types import OwnerKind, Role

NOW = datetime(2026, 3, 2, 9, 30, tzinfo=UTC)

APP = Application(
    id="app-1",
    applicant_id="user-ada",
    applicant_name="Ada Lovelace",
    position_title="Chapter Instructor",
    chapter_id="ch-north",
    chapter_name="North",
    status=ApplicationStatus.UNDER_REVIEW,
    submitted_at=NOW - timedelta(days=3),
)
GATE = ReadinessGate(
    id="gate-1",
    instructor_id="user-ivy",
    instructor_name="Ivy Chen",
    chapter_id="ch-north",
    chapter_name="North",
)
TRAINED = TrainingProgress(instructor_id="user-ivy", required_modules=5, completed_modules=5)


def _slot(
    slot_id: str,
    status: SlotStatus,
    hours: int = 24,
    owner_id: str = "gate-1",
    kind: OwnerKind = OwnerKind.READINESS_GATE,
) -> InterviewSlot:
    return InterviewSlot(
        id=slot_id,
        owner_id=owner_id,
        owner_kind=kind,
        scheduled_at=NOW + timedelta(hours=hours),
        duration_minutes=30,
        status=status,
        proposed_by_role=Role.ADMIN,
    )


def _app_slot(slot_id: str, status: SlotStatus, hours: int = 24) -> InterviewSlot:
    return _slot(slot_id, status, hours, owner_id="app-1", kind=OwnerKind.APPLICATION)


def _request(request_id: str, minutes_ago: int = 10) -> AvailabilityRequest:
    return AvailabilityRequest(
        id=request_id,
        owner_id="gate-1",
        owner_kind=OwnerKind.READINESS_GATE,
        requested_by="user-ivy",
        preferred_windows=[NOW + timedelta(days=2)],
        created_at=NOW - timedelta(minutes=minutes_ago),
    )


def _gate_task(slots=(), requests=(), outcome=None, progress=TRAINED, viewer=Role.ADMIN):
    return derive_task(
        GATE, readiness_prerequisites(progress), slots, requests, outcome, viewer, now=NOW
    )


def _app_task(slots=(), outcome=None, app=APP, viewer=Role.ADMIN):
    return derive_task(app, hiring_prerequisites(app), slots, [], outcome, viewer, now=NOW)


class TestDefaultSlotTime:
    """Test form pre-fill time."""

    def test_rounds_to_hour(self) -> None:
        assert default_slot_time(NOW) == datetime(2026, 3, 3, 9, 0, tzinfo=UTC)

    def test_custom_lead(self) -> None:
        assert default_slot_time(NOW, lead_hours=2) == datetime(2026, 3, 2, 11, 0, tzinfo=UTC)


class TestBlocked:
    """Prerequisites and inconsistencies block a task."""

    def test_incomplete_training(self) -> None:
        progress = TrainingProgress(
            instructor_id="user-ivy", required_modules=5, completed_modules=2
        )
        task = _gate_task(progress=progress)
        assert task.stage == TaskStage.BLOCKED
        assert task.blockers == ["3 of 5 required training modules incomplete."]
        assert isinstance(task.primary_action, OpenDetails)

    def test_missing_training_record(self) -> None:
        task = _gate_task(progress=None)
        assert task.stage == TaskStage.BLOCKED
        assert task.blockers == ["Training progress record is missing."]

    def test_prerequisites_win_over_outcome(self) -> None:
        progress = TrainingProgress(
            instructor_id="user-ivy", required_modules=5, completed_modules=4
        )
        outcome = ReadinessOutcome(gate_id="gate-1", outcome="waive", recorded_by="admin-1")
        task = _gate_task(outcome=outcome, progress=progress)
        assert task.stage == TaskStage.BLOCKED

    def test_unscreened_application(self) -> None:
        app = APP.model_copy(update={"status": ApplicationStatus.SUBMITTED})
        task = _app_task(app=app)
        assert task.stage == TaskStage.BLOCKED
        assert task.blockers == ["Application has not passed initial screening."]

    def test_two_confirmed_slots(self) -> None:
        slots = [_slot("s1", SlotStatus.CONFIRMED), _slot("s2", SlotStatus.CONFIRMED, hours=26)]
        task = _gate_task(slots=slots)
        assert task.stage == TaskStage.BLOCKED
        assert "admin must resolve" in task.blockers[0]

    def test_completed_slot_without_outcome(self) -> None:
        task = _gate_task(slots=[_slot("s1", SlotStatus.COMPLETED)])
        assert task.stage == TaskStage.BLOCKED
        assert task.blockers == ["Interview marked completed but no outcome is recorded."]

    def test_foreign_records(self) -> None:
        task = _gate_task(slots=[_app_slot("s1", SlotStatus.PROPOSED)])
        assert task.stage == TaskStage.BLOCKED
        assert "different owner" in task.blockers[0]


class TestCompleted:
    """Recorded outcomes complete a task."""

    def test_readiness_outcome(self) -> None:
        slot = _slot("s1", SlotStatus.COMPLETED)
        outcome = ReadinessOutcome(
            gate_id="gate-1", slot_id="s1", outcome="pass", recorded_by="admin-1", recorded_at=NOW
        )
        task = _gate_task(slots=[slot], outcome=outcome)
        assert task.stage == TaskStage.COMPLETED
        assert task.subtitle == "North · Outcome: PASS"
        assert task.timestamps.completed_at == NOW
        assert task.timestamps.scheduled_at == slot.scheduled_at
        assert not task.is_actionable

    def test_hiring_outcome(self) -> None:
        outcome = HiringOutcome(
            application_id="app-1", recommendation="strong_yes", content="x", recorded_by="a"
        )
        task = _app_task(outcome=outcome)
        assert task.stage == TaskStage.COMPLETED
        assert task.subtitle.endswith("Recommendation: STRONG YES")

    def test_closed_application(self) -> None:
        app = APP.model_copy(update={"status": ApplicationStatus.ACCEPTED})
        task = _app_task(app=app, slots=[_app_slot("s1", SlotStatus.PROPOSED)])
        assert task.stage == TaskStage.COMPLETED
        assert "Decision posted" in task.subtitle


class TestScheduled:
    """A confirmed slot schedules a task."""

    def test_reviewer_gets_complete_action(self) -> None:
        task = _gate_task(slots=[_slot("s1", SlotStatus.CONFIRMED)])
        assert task.stage == TaskStage.SCHEDULED
        assert task.primary_action == CompleteReadinessInterview(gate_id="gate-1", slot_id="s1")
        assert "2026-03-03 09:30 UTC" in task.detail

    def test_hiring_reviewer_action(self) -> None:
        task = _app_task(slots=[_app_slot("s1", SlotStatus.CONFIRMED)])
        assert task.primary_action == CompleteHiringInterview(application_id="app-1", slot_id="s1")

    def test_candidate_gets_details(self) -> None:
        task = _gate_task(slots=[_slot("s1", SlotStatus.CONFIRMED)], viewer=Role.INSTRUCTOR)
        assert task.stage == TaskStage.SCHEDULED
        assert isinstance(task.primary_action, OpenDetails)
        assert task.primary_action.href == "/instructor-training"

    def test_past_confirmed_slot_stays_scheduled(self) -> None:
        task = _gate_task(slots=[_slot("s1", SlotStatus.CONFIRMED, hours=-48)])
        assert task.stage == TaskStage.SCHEDULED


class TestNeedsAction:
    """Open work needs action."""

    def test_proposed_slots_offer_earliest(self) -> None:
        slots = [_slot("late", SlotStatus.PROPOSED, hours=30), _slot("early", SlotStatus.PROPOSED)]
        task = _gate_task(slots=slots, viewer=Role.INSTRUCTOR)
        assert task.stage == TaskStage.NEEDS_ACTION
        assert task.primary_action == ConfirmReadinessSlot(slot_id="early")

    def test_hiring_proposed_uses_confirm_slot(self) -> None:
        task = _app_task(slots=[_app_slot("s1", SlotStatus.PROPOSED)], viewer=Role.APPLICANT)
        assert task.primary_action == ConfirmSlot(slot_id="s1")

    def test_superseded_slots_ignored(self) -> None:
        slots = [_slot("s1", SlotStatus.SUPERSEDED), _slot("s2", SlotStatus.CANCELLED)]
        task = _gate_task(slots=slots)
        assert isinstance(task.primary_action, PostReadinessSlotsBulk)

    def test_proposed_beats_pending_request(self) -> None:
        task = _gate_task(slots=[_slot("s1", SlotStatus.PROPOSED)], requests=[_request("r1")])
        assert task.primary_action == ConfirmReadinessSlot(slot_id="s1")

    def test_reviewer_accepts_oldest_request(self) -> None:
        task = _gate_task(requests=[_request("new", 5), _request("old", 60)])
        assert isinstance(task.primary_action, AcceptAvailabilityRequest)
        assert task.primary_action.request_id == "old"
        assert task.primary_action.preferred_windows == [NOW + timedelta(days=2)]

    def test_handled_requests_ignored(self) -> None:
        declined = _request("r1").model_copy(update={"status": RequestStatus.DECLINED})
        task = _gate_task(requests=[declined])
        assert isinstance(task.primary_action, PostReadinessSlotsBulk)

    def test_candidate_waits_on_request(self) -> None:
        task = _gate_task(requests=[_request("r1")], viewer=Role.INSTRUCTOR)
        assert task.stage == TaskStage.NEEDS_ACTION
        assert isinstance(task.primary_action, OpenDetails)
        assert "Waiting for a reviewer" in task.detail

    def test_reviewer_posts_readiness_slots(self) -> None:
        task = _gate_task()
        assert task.primary_action == PostReadinessSlotsBulk(
            instructor_id="user-ivy",
            gate_id="gate-1",
            default_time=datetime(2026, 3, 3, 9, 0, tzinfo=UTC),
        )

    def test_reviewer_posts_hiring_slots(self) -> None:
        task = _app_task()
        assert isinstance(task.primary_action, PostSlotsBulk)
        assert task.primary_action.owner_id == "app-1"

    def test_optional_interview_note_action(self) -> None:
        app = APP.model_copy(update={"interview_required": False})
        task = _app_task(app=app)
        assert task.primary_action == AddRecommendationNote(application_id="app-1")

    def test_candidate_requests_availability(self) -> None:
        task = _gate_task(viewer=Role.INSTRUCTOR)
        assert isinstance(task.primary_action, RequestAvailability)
        assert task.primary_action.owner_id == "gate-1"

    def test_applicant_optional_interview(self) -> None:
        app = APP.model_copy(update={"interview_required": False})
        task = _app_task(app=app, viewer=Role.APPLICANT)
        assert isinstance(task.primary_action, OpenDetails)
        assert "Interview optional" in task.subtitle


class TestPresentation:
    """Titles, links and audience depend on the viewer."""

    def test_reviewer_hiring_frame(self) -> None:
        task = _app_task()
        assert task.id == "hiring-app-1"
        assert task.domain == OwnerKind.APPLICATION
        assert task.audience == Audience.TEAM
        assert task.title == "Ada Lovelace · Chapter Instructor"
        assert task.href == "/applications/app-1"
        assert task.timestamps.submitted_at == APP.submitted_at

    def test_candidate_hiring_frame(self) -> None:
        task = _app_task(viewer=Role.APPLICANT)
        assert task.audience == Audience.MINE
        assert task.title == "Chapter Instructor"

    def test_readiness_frames(self) -> None:
        reviewer = _gate_task()
        candidate = _gate_task(viewer=Role.INSTRUCTOR)
        assert reviewer.id == "readiness-gate-1"
        assert reviewer.title == "Ivy Chen · Instructor Readiness"
        assert reviewer.secondary_links[0].label == "Open Interview Hub"
        assert candidate.title == "Instructor Interview Readiness"
        assert candidate.secondary_links[0].href == "/instructor-training"

    @pytest.mark.parametrize("viewer", [Role.ADMIN, Role.INSTRUCTOR])
    def test_deterministic(self, viewer: Role) -> None:
        """Same inputs, same task."""
        slots = [_slot("s1", SlotStatus.PROPOSED), _slot("s2", SlotStatus.PROPOSED, hours=26)]
        assert _gate_task(slots=slots, viewer=viewer) == _gate_task(slots=slots, viewer=viewer)

    def test_serializes_action_kind(self) -> None:
        task = _gate_task(slots=[_slot("s1", SlotStatus.CONFIRMED)])
        dumped = task.model_dump(mode="json")
        assert dumped["primary_action"]["kind"] == "complete_readiness_interview"
        assert dumped["stage"] == "scheduled"
