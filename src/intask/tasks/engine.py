"""Task derivation engine — one InterviewTask from fetched records.

`derive_task` is a pure function of its arguments: it reads no storage, keeps
no state and never raises for bad data. A missing prerequisite record or an
inconsistent slot set is rendered as a BLOCKED task with a blocker message,
so one broken owner cannot fail a whole feed.

Stage rules, in order:
1. Unmet prerequisites or inconsistent records -> BLOCKED, open_details.
2. Outcome recorded (or owner closed) -> COMPLETED, open_details.
3. A CONFIRMED slot -> SCHEDULED, complete action for reviewers.
4. PROPOSED slots or a PENDING request -> NEEDS_ACTION, confirm (preferred)
   or accept action.
5. Nothing yet -> NEEDS_ACTION, reviewers post slots, candidates request
   availability.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict

from intask.scheduling.models import (
    Application,
    AvailabilityRequest,
    InterviewOutcome,
    InterviewSlot,
    Owner,
    ReadinessGate,
    RequestStatus,
    SlotStatus,
)
from intask.scheduling.prerequisites import Prerequisite
from intask.tasks.models import (
    AcceptAvailabilityRequest,
    AddRecommendationNote,
    Audience,
    CompleteHiringInterview,
    CompleteReadinessInterview,
    ConfirmReadinessSlot,
    ConfirmSlot,
    InterviewTask,
    OpenDetails,
    PostReadinessSlotsBulk,
    PostSlotsBulk,
    PrimaryAction,
    RequestAvailability,
    TaskLink,
    TaskStage,
    TaskTimestamps,
)
from intask.types import OwnerKind, OwnerRef, Role

DEFAULT_LEAD_HOURS = 24
READINESS_HUB_HREF = "/interviews?scope=readiness"
TRAINING_HREF = "/instructor-training"


def format_time(value: datetime) -> str:
    """Render a timestamp the same way in every task detail."""
    return value.astimezone(UTC).strftime("%Y-%m-%d %H:%M UTC")


def default_slot_time(now: datetime, lead_hours: int = DEFAULT_LEAD_HOURS) -> datetime:
    """Pre-fill time for scheduling forms: lead_hours ahead, on the hour."""
    target = now + timedelta(hours=lead_hours)
    return target.replace(minute=0, second=0, microsecond=0)


class _Frame(BaseModel):
    """Owner presentation for one viewer perspective."""

    task_id: str
    title: str
    chapter: str
    owner_name: str
    href: str
    links: list[TaskLink]
    submitted_at: datetime | None = None

    model_config = ConfigDict(frozen=True)


def _frame(owner: Owner, reviewer_view: bool) -> _Frame:
    if isinstance(owner, Application):
        href = f"/applications/{owner.id}"
        return _Frame(
            task_id=f"hiring-{owner.id}",
            title=(
                f"{owner.applicant_name} · {owner.position_title}"
                if reviewer_view
                else owner.position_title
            ),
            chapter=owner.chapter_name,
            owner_name=owner.applicant_name,
            href=href,
            links=[TaskLink(label="Open Application", href=href)],
            submitted_at=owner.submitted_at,
        )
    href = READINESS_HUB_HREF if reviewer_view else TRAINING_HREF
    return _Frame(
        task_id=f"readiness-{owner.id}",
        title=(
            f"{owner.instructor_name} · Instructor Readiness"
            if reviewer_view
            else "Instructor Interview Readiness"
        ),
        chapter=owner.chapter_name,
        owner_name=owner.instructor_name,
        href=href,
        links=[
            TaskLink(
                label="Open Interview Hub" if reviewer_view else "Open Training Academy",
                href=href,
            )
        ],
    )


def _confirm_action(ref: OwnerRef, slot: InterviewSlot) -> PrimaryAction:
    if ref.kind == OwnerKind.APPLICATION:
        return ConfirmSlot(slot_id=slot.id)
    return ConfirmReadinessSlot(slot_id=slot.id)


def _complete_action(owner: Owner, slot: InterviewSlot) -> PrimaryAction:
    if isinstance(owner, Application):
        return CompleteHiringInterview(application_id=owner.id, slot_id=slot.id)
    return CompleteReadinessInterview(gate_id=owner.id, slot_id=slot.id)


def _post_action(owner: Owner, default_time: datetime) -> PrimaryAction:
    if isinstance(owner, ReadinessGate):
        return PostReadinessSlotsBulk(
            instructor_id=owner.instructor_id, gate_id=owner.id, default_time=default_time
        )
    if not owner.interview_required:
        return AddRecommendationNote(application_id=owner.id)
    return PostSlotsBulk(owner_id=owner.id, default_time=default_time)


def _inconsistencies(
    ref: OwnerRef,
    slots: Sequence[InterviewSlot],
    requests: Sequence[AvailabilityRequest],
    outcome: InterviewOutcome | None,
) -> list[str]:
    problems: list[str] = []
    foreign = sum(1 for s in slots if s.owner != ref) + sum(1 for r in requests if r.owner != ref)
    if foreign:
        problems.append(f"{foreign} scheduling record(s) reference a different owner.")
    if outcome is not None and outcome.owner != ref:
        problems.append("Recorded outcome belongs to a different owner.")
    active = [s for s in slots if s.owner == ref and s.status.is_active]
    if len(active) > 1:
        problems.append(
            "Multiple confirmed interview slots found; an admin must resolve the conflict."
        )
    if outcome is None and any(s.status == SlotStatus.COMPLETED for s in active):
        problems.append("Interview marked completed but no outcome is recorded.")
    return problems


def _outcome_label(outcome: InterviewOutcome) -> str:
    if outcome.kind == "hiring":
        return f"Recommendation: {outcome.value.replace('_', ' ').upper()}"
    return f"Outcome: {outcome.value.upper()}"


def derive_task(
    owner: Owner,
    prerequisites: Sequence[Prerequisite],
    slots: Sequence[InterviewSlot],
    requests: Sequence[AvailabilityRequest],
    outcome: InterviewOutcome | None,
    viewer: Role,
    *,
    now: datetime | None = None,
    lead_hours: int = DEFAULT_LEAD_HOURS,
) -> InterviewTask:
    """Combine one owner's records into the task shown to a viewer.

    Args:
        owner: Application or readiness gate
        prerequisites: Scheduling prerequisites for the owner
        slots: All of the owner's slots
        requests: The owner's availability requests (any status)
        outcome: Recorded outcome, if any
        viewer: Role the task is rendered for; reviewers get mutating
            reviewer actions, candidates get confirm/request actions
        now: Reference time for form pre-fill (defaults to current time)
        lead_hours: How far ahead pre-filled times are placed

    Returns:
        The derived task
    """
    ref = owner.owner_ref()
    reviewer_view = viewer.is_reviewer
    frame = _frame(owner, reviewer_view)
    own_slots = sorted((s for s in slots if s.owner == ref), key=lambda s: s.scheduled_at)
    confirmed = next((s for s in own_slots if s.status == SlotStatus.CONFIRMED), None)
    completed = next((s for s in own_slots if s.status == SlotStatus.COMPLETED), None)
    proposed = [s for s in own_slots if s.status == SlotStatus.PROPOSED]
    pending = sorted(
        (r for r in requests if r.owner == ref and r.status == RequestStatus.PENDING),
        key=lambda r: r.created_at,
    )
    details = OpenDetails(label="Open Details", href=frame.href)

    def task(
        stage: TaskStage,
        subtitle: str,
        detail: str,
        action: PrimaryAction,
        blockers: list[str] | None = None,
        scheduled_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> InterviewTask:
        return InterviewTask(
            id=frame.task_id,
            domain=ref.kind,
            audience=Audience.TEAM if reviewer_view else Audience.MINE,
            stage=stage,
            title=frame.title,
            subtitle=f"{frame.chapter} · {subtitle}",
            detail=detail,
            owner_name=frame.owner_name,
            href=frame.href,
            primary_action=action,
            secondary_links=frame.links,
            blockers=blockers or [],
            timestamps=TaskTimestamps(
                submitted_at=frame.submitted_at,
                scheduled_at=scheduled_at,
                completed_at=completed_at,
            ),
        )

    blockers = [p.blocker for p in prerequisites if not p.met]
    blockers += _inconsistencies(ref, slots, requests, outcome)
    if blockers:
        return task(
            TaskStage.BLOCKED,
            "Blocked",
            "Interview scheduling is blocked until the listed items are resolved.",
            details,
            blockers=blockers,
        )

    if outcome is not None:
        return task(
            TaskStage.COMPLETED,
            _outcome_label(outcome),
            "Interview workflow is complete.",
            details,
            scheduled_at=completed.scheduled_at if completed else None,
            completed_at=outcome.recorded_at,
        )

    if owner.is_closed():
        return task(
            TaskStage.COMPLETED,
            "Decision posted",
            "This record was closed outside the interview workflow.",
            details,
        )

    if confirmed is not None:
        when = format_time(confirmed.scheduled_at)
        if reviewer_view:
            return task(
                TaskStage.SCHEDULED,
                "Confirmed interview",
                f"Interview on {when}. Complete it and record the outcome in one step.",
                _complete_action(owner, confirmed),
                scheduled_at=confirmed.scheduled_at,
            )
        return task(
            TaskStage.SCHEDULED,
            "Interview confirmed",
            f"Interview is scheduled for {when}.",
            details,
            scheduled_at=confirmed.scheduled_at,
        )

    if proposed:
        first = proposed[0]
        options = ", ".join(format_time(s.scheduled_at) for s in proposed)
        return task(
            TaskStage.NEEDS_ACTION,
            "Confirm an interview slot",
            f"Proposed times: {options}.",
            _confirm_action(ref, first),
            scheduled_at=first.scheduled_at,
        )

    if pending:
        request = pending[0]
        if reviewer_view:
            return task(
                TaskStage.NEEDS_ACTION,
                "Availability request pending",
                "Accept an availability request and lock the interview time.",
                AcceptAvailabilityRequest(
                    request_id=request.id, preferred_windows=request.preferred_windows
                ),
            )
        return task(
            TaskStage.NEEDS_ACTION,
            "Availability submitted",
            "Waiting for a reviewer to accept one of your preferred times.",
            details,
        )

    default_time = default_slot_time(now or datetime.now(UTC), lead_hours)
    if reviewer_view:
        action = _post_action(owner, default_time)
        detail = (
            "Interview is optional for this position; record a recommendation note."
            if isinstance(action, AddRecommendationNote)
            else "Post up to three interview options in one step."
        )
        return task(TaskStage.NEEDS_ACTION, "No interview slots", detail, action)
    if isinstance(owner, Application) and not owner.interview_required:
        return task(
            TaskStage.NEEDS_ACTION,
            "Interview optional",
            "No interview is required for this position; a reviewer will follow up.",
            details,
        )
    return task(
        TaskStage.NEEDS_ACTION,
        "Submit preferred times",
        "Share your availability to get your interview scheduled.",
        RequestAvailability(owner_id=ref.id, default_time=default_time),
    )
