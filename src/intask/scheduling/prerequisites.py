"""Prerequisite checks that gate interview scheduling."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from intask.scheduling.models import (
    Application,
    ApplicationStatus,
    Owner,
    ReadinessGate,
    TrainingProgress,
)
from intask.scheduling.store import SlotStore


class Prerequisite(BaseModel):
    """A condition that must hold before the interview can be scheduled."""

    code: str
    met: bool
    blocker: str = Field(description="Human-readable reason shown when unmet")

    model_config = ConfigDict(frozen=True)


def readiness_prerequisites(progress: TrainingProgress | None) -> list[Prerequisite]:
    """Required training modules must be complete before a readiness interview."""
    if progress is None:
        return [
            Prerequisite(
                code="training_record",
                met=False,
                blocker="Training progress record is missing.",
            )
        ]
    return [
        Prerequisite(
            code="required_training",
            met=progress.is_complete,
            blocker=(
                f"{progress.missing_count} of {progress.required_modules} required "
                "training modules incomplete."
            ),
        )
    ]


def hiring_prerequisites(application: Application) -> list[Prerequisite]:
    """The application must have passed initial screening."""
    return [
        Prerequisite(
            code="initial_screening",
            met=application.status != ApplicationStatus.SUBMITTED,
            blocker="Application has not passed initial screening.",
        )
    ]


def owner_prerequisites(store: SlotStore, owner: Owner) -> list[Prerequisite]:
    """Fetch whatever the owner's checks need and evaluate them."""
    if isinstance(owner, ReadinessGate):
        return readiness_prerequisites(store.get_training_progress(owner.instructor_id))
    return hiring_prerequisites(owner)
