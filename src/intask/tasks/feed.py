"""Task feed — the single read-side query over both pipelines."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

import pydantic

from intask.scheduling.base import SchedulingError
from intask.scheduling.models import Owner
from intask.scheduling.prerequisites import owner_prerequisites
from intask.scheduling.store import SlotStore
from intask.tasks.engine import DEFAULT_LEAD_HOURS, derive_task
from intask.tasks.models import InterviewTask, OpenDetails, TaskBoard, TaskStage
from intask.types import OwnerKind, OwnerRef, Role


class TaskScope(StrEnum):
    """Which pipelines to include."""

    ALL = "all"
    HIRING = "hiring"
    READINESS = "readiness"


class TaskView(StrEnum):
    """Candidate's own interviews, or the reviewer's team queue."""

    MINE = "mine"
    TEAM = "team"


class StateFilter(StrEnum):
    """Stage filter for the feed."""

    ALL = "all"
    NEEDS_ACTION = "needs_action"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    BLOCKED = "blocked"

    def matches(self, stage: TaskStage) -> bool:
        return self == StateFilter.ALL or self.value == stage.value


_STAGE_RANK = {
    TaskStage.NEEDS_ACTION: 0,
    TaskStage.BLOCKED: 1,
    TaskStage.SCHEDULED: 2,
    TaskStage.COMPLETED: 3,
}

_MIN_TIME = datetime.min.replace(tzinfo=UTC)


def sort_tasks(tasks: list[InterviewTask]) -> list[InterviewTask]:
    """Order by stage rank, then most recent timestamp first."""
    by_time = sorted(tasks, key=lambda t: t.timestamps.sort_key or _MIN_TIME, reverse=True)
    return sorted(by_time, key=lambda t: _STAGE_RANK[t.stage])


def _candidate_role(kind: OwnerKind) -> Role:
    return Role.APPLICANT if kind == OwnerKind.APPLICATION else Role.INSTRUCTOR


def _broken_task(owner: Owner, viewer: Role, reason: str) -> InterviewTask:
    """Fallback when an owner's records cannot even be loaded."""
    task = derive_task(owner, [], [], [], None, viewer)
    return task.model_copy(
        update={
            "stage": TaskStage.BLOCKED,
            "detail": "Interview records could not be loaded.",
            "primary_action": OpenDetails(label="Open Details", href=task.href),
            "blockers": [reason],
        }
    )


def task_for_owner(
    store: SlotStore,
    owner: Owner,
    viewer: Role,
    *,
    now: datetime | None = None,
    lead_hours: int = DEFAULT_LEAD_HOURS,
) -> InterviewTask:
    """Fetch one owner's records and derive its task.

    Never raises for a broken record: load failures become a BLOCKED task.
    """
    ref = owner.owner_ref()
    try:
        prerequisites = owner_prerequisites(store, owner)
        slots = store.get_slots(ref.id, ref.kind)
        requests = store.list_requests(ref)
        outcome = store.get_outcome(ref)
    except (SchedulingError, pydantic.ValidationError, ValueError) as e:
        return _broken_task(owner, viewer, f"Interview records are inconsistent: {e}")
    return derive_task(
        owner, prerequisites, slots, requests, outcome, viewer, now=now, lead_hours=lead_hours
    )


def refresh_task(
    store: SlotStore,
    ref: OwnerRef,
    viewer: Role,
    *,
    now: datetime | None = None,
    lead_hours: int = DEFAULT_LEAD_HOURS,
) -> InterviewTask:
    """Re-derive the task for an owner after a command changed it."""
    return task_for_owner(store, store.get_owner(ref), viewer, now=now, lead_hours=lead_hours)


def list_interview_tasks(
    store: SlotStore,
    for_role: Role,
    for_user_id: str,
    *,
    chapter_id: str | None = None,
    scope: TaskScope = TaskScope.ALL,
    state: StateFilter = StateFilter.ALL,
    view: TaskView | None = None,
    now: datetime | None = None,
    lead_hours: int = DEFAULT_LEAD_HOURS,
) -> list[InterviewTask]:
    """List the interview tasks a user should see.

    Reviewers default to the team view: every open application and every gate
    (chapter leads only within their chapter). Candidates always get their own
    applications and readiness gate. Applications with a posted decision are
    left out.

    Args:
        store: Scheduling store
        for_role: Role the viewer is acting in
        for_user_id: Viewer's user id
        chapter_id: Viewer's chapter, which scopes chapter leads
        scope: Restrict to hiring or readiness tasks
        state: Restrict to one stage
        view: Force the mine/team view (team is only available to reviewers)

    Returns:
        Tasks sorted by stage rank and recency
    """
    team = for_role.is_reviewer and view != TaskView.MINE
    include_hiring = scope in (TaskScope.ALL, TaskScope.HIRING)
    include_readiness = (
        scope in (TaskScope.ALL, TaskScope.READINESS)
        and (for_role != Role.APPLICANT or team)
    )

    owners: list[tuple[Owner, Role]] = []
    if team:
        chapter = None if for_role == Role.ADMIN else chapter_id or "__no_chapter__"
        if include_hiring:
            owners += [(a, for_role) for a in store.list_applications(chapter_id=chapter)]
        if include_readiness:
            owners += [(g, for_role) for g in store.list_gates(chapter_id=chapter)]
    else:
        if include_hiring:
            mine = store.list_applications(applicant_id=for_user_id)
            owners += [(a, _candidate_role(OwnerKind.APPLICATION)) for a in mine]
        if include_readiness:
            gate = store.find_gate_for_instructor(for_user_id)
            if gate is not None:
                owners.append((gate, _candidate_role(OwnerKind.READINESS_GATE)))

    tasks = [
        task_for_owner(store, owner, viewer, now=now, lead_hours=lead_hours)
        for owner, viewer in owners
    ]
    return [t for t in sort_tasks(tasks) if state.matches(t.stage)]


def build_task_board(tasks: list[InterviewTask]) -> TaskBoard:
    """Group an already-filtered feed by stage."""
    return TaskBoard(tasks=tasks)
