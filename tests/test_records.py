"""Tests for owner record import."""

import json
from pathlib import Path

import pytest

from intask.audit import AuditFilter, EventType
from intask.records import RecordBundle, import_records, load_records
from intask.scheduling import ApplicationStatus, SlotStore
from intask.types import Actor

RECORDS = {
    "applications": [
        {
            "id": "app-7",
            "applicant_id": "user-grace",
            "applicant_name": "Grace Hopper",
            "position_title": "Robotics Mentor",
            "chapter_id": "ch-north",
            "chapter_name": "North",
            "status": "under_review",
        }
    ],
    "readiness_gates": [
        {"id": "gate-7", "instructor_id": "user-ivy", "instructor_name": "Ivy Chen"}
    ],
    "training_progress": [
        {"instructor_id": "user-ivy", "required_modules": 4, "completed_modules": 1}
    ],
}


@pytest.fixture
def records_file(tmp_path: Path) -> Path:
    path = tmp_path / "records.json"
    path.write_text(json.dumps(RECORDS))
    return path


class TestLoadRecords:
    """Test load_records."""

    def test_valid_file(self, records_file: Path) -> None:
        bundle = load_records(records_file)
        assert bundle.counts() == {
            "applications": 1,
            "readiness_gates": 1,
            "training_progress": 1,
        }
        assert bundle.applications[0].status == ApplicationStatus.UNDER_REVIEW

    def test_missing_sections_default_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.json"
        path.write_text("{}")
        assert load_records(path) == RecordBundle()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Records file not found"):
            load_records(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ValueError, match="Invalid JSON"):
            load_records(path)

    def test_schema_mismatch(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"applications": [{"id": "app-1"}]}))
        with pytest.raises(ValueError, match="record schema"):
            load_records(path)


class TestImportRecords:
    """Test import_records."""

    def test_upserts_and_logs(
        self, store: SlotStore, records_file: Path, admin: Actor
    ) -> None:
        counts = import_records(store, load_records(records_file), admin)

        assert counts["applications"] == 1
        assert store.get_application("app-7").applicant_name == "Grace Hopper"
        assert store.get_gate("gate-7").instructor_id == "user-ivy"
        assert store.get_training_progress("user-ivy").missing_count == 3
        (event,) = store.query_events(AuditFilter(event_type=EventType.RECORDS_IMPORTED))
        assert event.actor_id == "admin-1"
        assert event.metadata == counts

    def test_reimport_updates_in_place(
        self, store: SlotStore, records_file: Path, admin: Actor
    ) -> None:
        bundle = load_records(records_file)
        import_records(store, bundle, admin)
        closed = bundle.applications[0].model_copy(
            update={"status": ApplicationStatus.WITHDRAWN}
        )
        import_records(store, RecordBundle(applications=[closed]), admin)

        assert store.get_application("app-7").status == ApplicationStatus.WITHDRAWN
        assert store.list_applications(applicant_id="user-grace") == []
