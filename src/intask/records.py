"""Owner record import — seeds applications, gates and training progress.

The host application owns these records; the hub only needs a copy to
derive tasks. Records arrive as one JSON document:

    {
      "applications": [...],
      "readiness_gates": [...],
      "training_progress": [...]
    }
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field

from intask.audit import AuditEvent, EventType
from intask.scheduling import Application, ReadinessGate, SlotStore, TrainingProgress
from intask.types import Actor


class RecordBundle(BaseModel):
    """Owner records to upsert into the store."""

    applications: list[Application] = Field(default_factory=list)
    readiness_gates: list[ReadinessGate] = Field(default_factory=list)
    training_progress: list[TrainingProgress] = Field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "applications": len(self.applications),
            "readiness_gates": len(self.readiness_gates),
            "training_progress": len(self.training_progress),
        }


def load_records(path: Path) -> RecordBundle:
    """Read a records file (JSON).

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file contains invalid JSON or doesn't match the schema.
    """
    if not path.exists():
        raise FileNotFoundError(f"Records file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in records file: {e}") from e

    try:
        return RecordBundle.model_validate(data)
    except Exception as e:
        raise ValueError(f"Records file doesn't match the record schema: {e}") from e


def import_records(store: SlotStore, bundle: RecordBundle, imported_by: Actor) -> dict[str, int]:
    """Upsert every record in one transaction and log the import.

    Returns:
        Number of records written per kind
    """
    with store.transaction():
        for application in bundle.applications:
            store.save_application(application)
        for gate in bundle.readiness_gates:
            store.save_gate(gate)
        for progress in bundle.training_progress:
            store.save_training_progress(progress)
        counts = bundle.counts()
        store.write_event(
            AuditEvent.for_actor(imported_by, EventType.RECORDS_IMPORTED, metadata=dict(counts))
        )
    return counts
