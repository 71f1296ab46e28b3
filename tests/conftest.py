"""Shared test fixtures."""

from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from intask.scheduling import (
    Application,
    ApplicationStatus,
    ReadinessGate,
    SlotStore,
    TrainingProgress,
)
from intask.types import Actor, Role

NOW = datetime(2026, 3, 2, 9, 30, tzinfo=UTC)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "interviews.db"


@pytest.fixture
def store(db_path: Path) -> Iterator[SlotStore]:
    with SlotStore(db_path) as s:
        yield s


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id="admin-1", role=Role.ADMIN)


@pytest.fixture
def lead() -> Actor:
    return Actor(user_id="lead-1", role=Role.CHAPTER_LEAD, chapter_id="ch-north")


@pytest.fixture
def other_lead() -> Actor:
    return Actor(user_id="lead-2", role=Role.CHAPTER_LEAD, chapter_id="ch-south")


@pytest.fixture
def applicant() -> Actor:
    return Actor(user_id="user-ada", role=Role.APPLICANT)


@pytest.fixture
def instructor() -> Actor:
    return Actor(user_id="user-ivy", role=Role.INSTRUCTOR)


@pytest.fixture
def application(store: SlotStore) -> Application:
    """A screened application in the north chapter."""
    app = Application(
        id="app-1",
        applicant_id="user-ada",
        applicant_name="Ada Lovelace",
        position_title="Chapter Instructor",
        chapter_id="ch-north",
        chapter_name="North",
        status=ApplicationStatus.UNDER_REVIEW,
        submitted_at=NOW - timedelta(days=3),
    )
    store.save_application(app)
    return app


@pytest.fixture
def gate(store: SlotStore) -> ReadinessGate:
    """A readiness gate whose instructor finished all training."""
    g = ReadinessGate(
        id="gate-1",
        instructor_id="user-ivy",
        instructor_name="Ivy Chen",
        chapter_id="ch-north",
        chapter_name="North",
        created_at=NOW - timedelta(days=10),
    )
    store.save_gate(g)
    store.save_training_progress(
        TrainingProgress(instructor_id="user-ivy", required_modules=5, completed_modules=5)
    )
    return g


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for derivation and slot times."""
    return NOW


@pytest.fixture
def make_slots() -> Callable[..., list[dict[str, object]]]:
    """Build slot specs at NOW + 1 day + the given hour offsets."""

    def _make(*hours: int, duration: int = 30) -> list[dict[str, object]]:
        base = NOW + timedelta(days=1)
        return [
            {"scheduled_at": (base + timedelta(hours=h)).isoformat(), "duration_minutes": duration}
            for h in hours
        ]

    return _make
