"""Interview task view models.

An InterviewTask is never stored. It is rebuilt from owner, slot, request and
outcome records on every read, so it cannot drift from them.

`primary_action` is a closed tagged union discriminated on `kind`: each
variant carries only the ids and pre-fill values its form needs, and none of
them does any I/O.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from intask.types import OwnerKind


class TaskStage(StrEnum):
    """Derived status of one owner's interview, as shown to a user."""

    BLOCKED = "blocked"
    NEEDS_ACTION = "needs_action"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


class Audience(StrEnum):
    """Whose queue a task is rendered in."""

    MINE = "mine"
    TEAM = "team"


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class OpenDetails(_Action):
    kind: Literal["open_details"] = "open_details"
    label: str = "Open Details"
    href: str


class ConfirmSlot(_Action):
    kind: Literal["confirm_slot"] = "confirm_slot"
    label: str = "Confirm Interview Slot"
    slot_id: str


class PostSlotsBulk(_Action):
    kind: Literal["post_slots_bulk"] = "post_slots_bulk"
    label: str = "Post Interview Slots"
    owner_id: str
    default_time: datetime


class CompleteHiringInterview(_Action):
    kind: Literal["complete_hiring_interview"] = "complete_hiring_interview"
    label: str = "Complete + Save Recommendation"
    application_id: str
    slot_id: str


class AddRecommendationNote(_Action):
    """Note-only fallback when no interview slot exists."""

    kind: Literal["add_recommendation_note"] = "add_recommendation_note"
    label: str = "Add Recommendation Note"
    application_id: str


class ConfirmReadinessSlot(_Action):
    kind: Literal["confirm_readiness_slot"] = "confirm_readiness_slot"
    label: str = "Confirm Interview Slot"
    slot_id: str


class RequestAvailability(_Action):
    kind: Literal["request_availability"] = "request_availability"
    label: str = "Submit Availability"
    owner_id: str
    default_time: datetime


class PostReadinessSlotsBulk(_Action):
    kind: Literal["post_readiness_slots_bulk"] = "post_readiness_slots_bulk"
    label: str = "Post Interview Slots"
    instructor_id: str
    gate_id: str
    default_time: datetime


class AcceptAvailabilityRequest(_Action):
    kind: Literal["accept_availability_request"] = "accept_availability_request"
    label: str = "Accept + Schedule"
    request_id: str
    preferred_windows: list[datetime] = Field(default_factory=list)


class CompleteReadinessInterview(_Action):
    kind: Literal["complete_readiness_interview"] = "complete_readiness_interview"
    label: str = "Complete + Set Outcome"
    gate_id: str
    slot_id: str | None = None


PrimaryAction = Annotated[
    OpenDetails
    | ConfirmSlot
    | PostSlotsBulk
    | CompleteHiringInterview
    | AddRecommendationNote
    | ConfirmReadinessSlot
    | RequestAvailability
    | PostReadinessSlotsBulk
    | AcceptAvailabilityRequest
    | CompleteReadinessInterview,
    Field(discriminator="kind"),
]


class TaskLink(BaseModel):
    """A navigation link rendered next to the primary action."""

    label: str
    href: str

    model_config = ConfigDict(frozen=True)


class TaskTimestamps(BaseModel):
    """Times used for display and for ordering the feed."""

    submitted_at: datetime | None = None
    scheduled_at: datetime | None = None
    completed_at: datetime | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def sort_key(self) -> datetime | None:
        """Most relevant time: scheduled, then submitted, then completed."""
        return self.scheduled_at or self.submitted_at or self.completed_at


class InterviewTask(BaseModel):
    """Read view of one owner's interview for one viewer."""

    id: str
    domain: OwnerKind
    audience: Audience
    stage: TaskStage
    title: str
    subtitle: str
    detail: str
    owner_name: str
    href: str
    primary_action: PrimaryAction
    secondary_links: list[TaskLink] = Field(default_factory=list)
    blockers: list[str] = Field(default_factory=list)
    timestamps: TaskTimestamps = Field(default_factory=TaskTimestamps)

    model_config = ConfigDict(frozen=True)

    @property
    def is_actionable(self) -> bool:
        """Check if the primary action changes state (anything but open_details)."""
        return self.primary_action.kind != "open_details"


class TaskBoard(BaseModel):
    """Feed output grouped by stage, for dashboard rendering."""

    tasks: list[InterviewTask] = Field(default_factory=list)

    @property
    def needs_action(self) -> list[InterviewTask]:
        return [t for t in self.tasks if t.stage == TaskStage.NEEDS_ACTION]

    @property
    def scheduled(self) -> list[InterviewTask]:
        return [t for t in self.tasks if t.stage == TaskStage.SCHEDULED]

    @property
    def completed(self) -> list[InterviewTask]:
        return [t for t in self.tasks if t.stage == TaskStage.COMPLETED]

    @property
    def blocked(self) -> list[InterviewTask]:
        return [t for t in self.tasks if t.stage == TaskStage.BLOCKED]

    def counts(self) -> dict[str, int]:
        """Number of tasks per stage."""
        return {stage.value: sum(1 for t in self.tasks if t.stage == stage) for stage in TaskStage}
