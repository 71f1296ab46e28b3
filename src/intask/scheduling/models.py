"""Scheduling data models — owners, slots, availability requests, and outcomes.

Both pipelines (hiring applications and instructor readiness gates) share the
same slot and request records. Owner-specific behavior lives behind the
HasSlots / HasOutcome capabilities so the services never branch on type.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Literal
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator

from intask.scheduling.base import HasOutcome, HasSlots
from intask.types import OwnerKind, OwnerRef, Role

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 180
MAX_SLOTS_PER_POST = 3
MAX_PREFERRED_WINDOWS = 3


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so comparisons never mix awareness."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class SlotStatus(StrEnum):
    """Interview slot lifecycle.

    PROPOSED: Posted as a candidate time, awaiting confirmation.
    CONFIRMED: The single agreed time for the owner.
    COMPLETED: Interview held and outcome recorded.
    SUPERSEDED: A sibling slot was confirmed instead.
    CANCELLED: Withdrawn because the owner reached a terminal outcome.
    """

    PROPOSED = "proposed"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    SUPERSEDED = "superseded"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        """CONFIRMED and COMPLETED slots count against the one-per-owner rule."""
        return self in (SlotStatus.CONFIRMED, SlotStatus.COMPLETED)


class SlotSource(StrEnum):
    """How a slot came to exist."""

    REVIEWER_POSTED = "reviewer_posted"
    CANDIDATE_REQUESTED = "candidate_requested"


class RequestStatus(StrEnum):
    """Availability request lifecycle."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"


class ApplicationStatus(StrEnum):
    """Hiring application statuses relevant to the interview flow."""

    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    INTERVIEW_COMPLETED = "interview_completed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"

    @property
    def is_final(self) -> bool:
        """Decision posted or application withdrawn."""
        return self in (
            ApplicationStatus.ACCEPTED,
            ApplicationStatus.REJECTED,
            ApplicationStatus.WITHDRAWN,
        )


class GateStatus(StrEnum):
    """Instructor readiness gate statuses."""

    REQUIRED = "required"
    SCHEDULED = "scheduled"
    PASSED = "passed"
    HOLD = "hold"
    FAILED = "failed"
    WAIVED = "waived"


class Recommendation(StrEnum):
    """Hiring interviewer recommendation."""

    STRONG_YES = "strong_yes"
    YES = "yes"
    MAYBE = "maybe"
    NO = "no"


class GateOutcome(StrEnum):
    """Readiness interview decision."""

    PASS = "pass"
    HOLD = "hold"
    FAIL = "fail"
    WAIVE = "waive"


_GATE_STATUS_BY_OUTCOME: dict[GateOutcome, GateStatus] = {
    GateOutcome.PASS: GateStatus.PASSED,
    GateOutcome.HOLD: GateStatus.HOLD,
    GateOutcome.FAIL: GateStatus.FAILED,
    GateOutcome.WAIVE: GateStatus.WAIVED,
}


class Application(BaseModel, HasSlots, HasOutcome):
    """A job application, owner of a hiring interview."""

    id: str
    applicant_id: str
    applicant_name: str = "Applicant"
    position_title: str
    chapter_id: str | None = None
    chapter_name: str = "Global"
    interview_required: bool = True
    status: ApplicationStatus = ApplicationStatus.SUBMITTED
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(frozen=True)

    def owner_ref(self) -> OwnerRef:
        return OwnerRef(kind=OwnerKind.APPLICATION, id=self.id)

    def candidate_user_id(self) -> str:
        return self.applicant_id

    def owning_chapter(self) -> str | None:
        return self.chapter_id

    def display_name(self) -> str:
        return self.applicant_name

    def is_closed(self) -> bool:
        return self.status.is_final

    def status_when_scheduled(self) -> str:
        return ApplicationStatus.INTERVIEW_SCHEDULED.value

    def status_after_outcome(self, outcome: str) -> str:
        # Any recommendation hands the application to decisioning.
        return ApplicationStatus.INTERVIEW_COMPLETED.value


class ReadinessGate(BaseModel, HasSlots, HasOutcome):
    """An instructor's readiness interview gate."""

    id: str
    instructor_id: str
    instructor_name: str = "Instructor"
    chapter_id: str | None = None
    chapter_name: str = "Global"
    status: GateStatus = GateStatus.REQUIRED
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(frozen=True)

    def owner_ref(self) -> OwnerRef:
        return OwnerRef(kind=OwnerKind.READINESS_GATE, id=self.id)

    def candidate_user_id(self) -> str:
        return self.instructor_id

    def owning_chapter(self) -> str | None:
        return self.chapter_id

    def display_name(self) -> str:
        return self.instructor_name

    def is_closed(self) -> bool:
        return False

    def status_when_scheduled(self) -> str:
        return GateStatus.SCHEDULED.value

    def status_after_outcome(self, outcome: str) -> str:
        return _GATE_STATUS_BY_OUTCOME[GateOutcome(outcome)].value


Owner = Application | ReadinessGate


class TrainingProgress(BaseModel):
    """Required training module counts for an instructor (external data)."""

    instructor_id: str
    required_modules: int = Field(ge=0)
    completed_modules: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def missing_count(self) -> int:
        """Number of required modules not yet complete."""
        return max(self.required_modules - self.completed_modules, 0)

    @property
    def is_complete(self) -> bool:
        """Check if every required module is complete."""
        return self.missing_count == 0


class SlotSpec(BaseModel):
    """One requested interview time in a bulk post or acceptance."""

    scheduled_at: datetime
    duration_minutes: int = Field(ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)
    meeting_link: str | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("scheduled_at")
    @classmethod
    def _normalize_scheduled_at(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @field_validator("meeting_link")
    @classmethod
    def _check_link(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        link = value.strip()
        parts = urlsplit(link)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError("meeting_link must be an http(s) URL")
        return link


class InterviewSlot(BaseModel):
    """A proposed or confirmed interview time, scoped to one owner."""

    id: str
    owner_id: str
    owner_kind: OwnerKind
    scheduled_at: datetime
    duration_minutes: int
    meeting_link: str | None = None
    status: SlotStatus = SlotStatus.PROPOSED
    proposed_by_role: Role
    source: SlotSource = SlotSource.REVIEWER_POSTED
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    confirmed_at: datetime | None = None
    confirmed_by_role: Role | None = None
    completed_at: datetime | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def owner(self) -> OwnerRef:
        """Reference to the owning application or gate."""
        return OwnerRef(kind=self.owner_kind, id=self.owner_id)

    @property
    def ends_at(self) -> datetime:
        """Scheduled end time."""
        return self.scheduled_at + timedelta(minutes=self.duration_minutes)


class AvailabilityRequest(BaseModel):
    """Candidate-submitted preferred interview windows."""

    id: str
    owner_id: str
    owner_kind: OwnerKind
    requested_by: str
    preferred_windows: list[datetime] = Field(min_length=1, max_length=MAX_PREFERRED_WINDOWS)
    note: str | None = None
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    review_notes: str | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("preferred_windows")
    @classmethod
    def _normalize_windows(cls, value: list[datetime]) -> list[datetime]:
        return [_as_utc(v) for v in value]

    @property
    def owner(self) -> OwnerRef:
        """Reference to the owning application or gate."""
        return OwnerRef(kind=self.owner_kind, id=self.owner_id)


class HiringOutcome(BaseModel):
    """Terminal hiring interview note with a recommendation."""

    kind: Literal["hiring"] = "hiring"
    application_id: str
    slot_id: str | None = None
    recommendation: Recommendation
    content: str = Field(min_length=1)
    strengths: str | None = None
    concerns: str | None = None
    recorded_by: str
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(frozen=True)

    @property
    def owner(self) -> OwnerRef:
        return OwnerRef(kind=OwnerKind.APPLICATION, id=self.application_id)

    @property
    def value(self) -> str:
        return self.recommendation.value


class ReadinessOutcome(BaseModel):
    """Terminal readiness decision for an instructor gate."""

    kind: Literal["readiness"] = "readiness"
    gate_id: str
    slot_id: str | None = None
    outcome: GateOutcome
    review_notes: str | None = None
    recorded_by: str
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(frozen=True)

    @property
    def owner(self) -> OwnerRef:
        return OwnerRef(kind=OwnerKind.READINESS_GATE, id=self.gate_id)

    @property
    def value(self) -> str:
        return self.outcome.value


InterviewOutcome = HiringOutcome | ReadinessOutcome
