"""SQLite storage backend for owners, slots, requests, outcomes, and audit events."""

from __future__ import annotations

import json
import sqlite3
import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from types import TracebackType

from intask.audit.models import AuditEvent, EventType
from intask.audit.query import AuditFilter
from intask.scheduling.base import ConflictError, NotFoundError, StateError, ValidationError
from intask.scheduling.models import (
    MAX_SLOTS_PER_POST,
    Application,
    ApplicationStatus,
    AvailabilityRequest,
    GateOutcome,
    GateStatus,
    HiringOutcome,
    InterviewOutcome,
    InterviewSlot,
    Owner,
    ReadinessGate,
    ReadinessOutcome,
    Recommendation,
    RequestStatus,
    SlotSource,
    SlotSpec,
    SlotStatus,
    TrainingProgress,
)
from intask.types import OwnerKind, OwnerRef, Role

_SLOT_TRANSITIONS: dict[SlotStatus, set[SlotStatus]] = {
    SlotStatus.PROPOSED: {SlotStatus.CONFIRMED, SlotStatus.SUPERSEDED, SlotStatus.CANCELLED},
    SlotStatus.CONFIRMED: {SlotStatus.COMPLETED, SlotStatus.CANCELLED},
}

_REQUEST_TRANSITIONS: dict[RequestStatus, set[RequestStatus]] = {
    RequestStatus.PENDING: {
        RequestStatus.ACCEPTED,
        RequestStatus.DECLINED,
        RequestStatus.CANCELLED,
    },
}


def _new_id() -> str:
    return uuid.uuid4().hex


def _ts(value: datetime | None) -> str | None:
    return value.astimezone(UTC).isoformat() if value is not None else None


def _dt(value: object) -> datetime | None:
    return datetime.fromisoformat(str(value)) if value is not None else None


class SlotStore:
    """SQLite store for the interview scheduling records.

    Uses WAL mode for concurrent reads. Writes go through explicit
    ``BEGIN IMMEDIATE`` transactions, so two connections racing to confirm
    slots of the same owner are serialized by the database: the loser sees the
    winner's CONFIRMED slot and fails the compare-and-set.

    A store belongs to the thread that opened it; other threads open their
    own store on the same file.
    """

    def __init__(self, db_path: Path, busy_timeout: float = 5.0) -> None:
        """Initialize store and create schema.

        Args:
            db_path: Path to SQLite database file (created if doesn't exist)
            busy_timeout: Seconds to wait for a competing writer's lock
        """
        self._db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(db_path),
            timeout=busy_timeout,
            isolation_level=None,
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._create_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _create_schema(self) -> None:
        """Create tables and indexes if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS applications (
                id TEXT PRIMARY KEY,
                applicant_id TEXT NOT NULL,
                applicant_name TEXT NOT NULL,
                position_title TEXT NOT NULL,
                chapter_id TEXT,
                chapter_name TEXT NOT NULL,
                interview_required INTEGER NOT NULL,
                status TEXT NOT NULL,
                submitted_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS readiness_gates (
                id TEXT PRIMARY KEY,
                instructor_id TEXT NOT NULL UNIQUE,
                instructor_name TEXT NOT NULL,
                chapter_id TEXT,
                chapter_name TEXT NOT NULL,
                status TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS training_progress (
                instructor_id TEXT PRIMARY KEY,
                required_modules INTEGER NOT NULL,
                completed_modules INTEGER NOT NULL
            );
            CREATE TABLE IF NOT EXISTS slots (
                id TEXT PRIMARY KEY,
                owner_kind TEXT NOT NULL,
                owner_id TEXT NOT NULL,
                scheduled_at TEXT NOT NULL,
                duration_minutes INTEGER NOT NULL,
                meeting_link TEXT,
                status TEXT NOT NULL,
                proposed_by_role TEXT NOT NULL,
                source TEXT NOT NULL,
                created_at TEXT NOT NULL,
                confirmed_at TEXT,
                confirmed_by_role TEXT,
                completed_at TEXT
            );
            CREATE INDEX IF NOT EXISTS idx_slots_owner ON slots(owner_kind, owner_id);
            CREATE UNIQUE INDEX IF NOT EXISTS idx_slots_one_active
                ON slots(owner_kind, owner_id)
                WHERE status IN ('confirmed', 'completed');
            CREATE TABLE IF NOT EXISTS availability_requests (
                id TEXT PRIMARY KEY,
                owner_kind TEXT NOT NULL,
                owner_id TEXT NOT NULL,
                requested_by TEXT NOT NULL,
                preferred_windows TEXT NOT NULL,
                note TEXT,
                status TEXT NOT NULL,
                created_at TEXT NOT NULL,
                reviewed_by TEXT,
                reviewed_at TEXT,
                review_notes TEXT
            );
            CREATE INDEX IF NOT EXISTS idx_requests_owner
                ON availability_requests(owner_kind, owner_id);
            CREATE TABLE IF NOT EXISTS outcomes (
                owner_kind TEXT NOT NULL,
                owner_id TEXT NOT NULL,
                slot_id TEXT,
                value TEXT NOT NULL,
                content TEXT,
                strengths TEXT,
                concerns TEXT,
                review_notes TEXT,
                recorded_by TEXT NOT NULL,
                recorded_at TEXT NOT NULL,
                PRIMARY KEY (owner_kind, owner_id)
            );
            CREATE TABLE IF NOT EXISTS events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                event_type TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                actor_id TEXT NOT NULL,
                actor_role TEXT NOT NULL,
                owner_kind TEXT,
                owner_id TEXT,
                subject_id TEXT,
                metadata TEXT NOT NULL DEFAULT '{}'
            );
            CREATE INDEX IF NOT EXISTS idx_events_timestamp ON events(timestamp);
            CREATE INDEX IF NOT EXISTS idx_events_owner ON events(owner_kind, owner_id);
        """)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the block in one write transaction.

        Nested calls join the outermost transaction; an exception anywhere
        rolls back everything written since the outer BEGIN.
        """
        if self._conn.in_transaction:
            yield
            return
        self._conn.execute("BEGIN IMMEDIATE")
        try:
            yield
        except BaseException:
            self._conn.rollback()
            raise
        self._conn.commit()

    # --- Owners ---

    def save_application(self, application: Application) -> None:
        """Insert or replace an application record."""
        self._conn.execute(
            """INSERT OR REPLACE INTO applications
            (id, applicant_id, applicant_name, position_title, chapter_id,
             chapter_name, interview_required, status, submitted_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                application.id,
                application.applicant_id,
                application.applicant_name,
                application.position_title,
                application.chapter_id,
                application.chapter_name,
                int(application.interview_required),
                application.status.value,
                _ts(application.submitted_at),
            ),
        )

    def _row_to_application(self, row: sqlite3.Row) -> Application:
        return Application(
            id=row["id"],
            applicant_id=row["applicant_id"],
            applicant_name=row["applicant_name"],
            position_title=row["position_title"],
            chapter_id=row["chapter_id"],
            chapter_name=row["chapter_name"],
            interview_required=bool(row["interview_required"]),
            status=ApplicationStatus(row["status"]),
            submitted_at=datetime.fromisoformat(row["submitted_at"]),
        )

    def get_application(self, application_id: str) -> Application:
        """Fetch an application by id.

        Raises:
            NotFoundError: If no application has this id
        """
        row = self._conn.execute(
            "SELECT * FROM applications WHERE id = ?", (application_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Application {application_id} not found")
        return self._row_to_application(row)

    def list_applications(
        self,
        applicant_id: str | None = None,
        chapter_id: str | None = None,
        include_final: bool = False,
    ) -> list[Application]:
        """List applications, newest submission first."""
        conditions: list[str] = []
        params: list[object] = []
        if applicant_id is not None:
            conditions.append("applicant_id = ?")
            params.append(applicant_id)
        if chapter_id is not None:
            conditions.append("chapter_id = ?")
            params.append(chapter_id)
        if not include_final:
            final = [s.value for s in ApplicationStatus if s.is_final]
            conditions.append(f"status NOT IN ({', '.join('?' for _ in final)})")
            params.extend(final)
        where = " AND ".join(conditions) if conditions else "1=1"
        rows = self._conn.execute(
            f"SELECT * FROM applications WHERE {where} ORDER BY submitted_at DESC", params
        ).fetchall()
        return [self._row_to_application(row) for row in rows]

    def save_gate(self, gate: ReadinessGate) -> None:
        """Insert or replace a readiness gate record."""
        self._conn.execute(
            """INSERT OR REPLACE INTO readiness_gates
            (id, instructor_id, instructor_name, chapter_id, chapter_name, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                gate.id,
                gate.instructor_id,
                gate.instructor_name,
                gate.chapter_id,
                gate.chapter_name,
                gate.status.value,
                _ts(gate.created_at),
            ),
        )

    def _row_to_gate(self, row: sqlite3.Row) -> ReadinessGate:
        return ReadinessGate(
            id=row["id"],
            instructor_id=row["instructor_id"],
            instructor_name=row["instructor_name"],
            chapter_id=row["chapter_id"],
            chapter_name=row["chapter_name"],
            status=GateStatus(row["status"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def get_gate(self, gate_id: str) -> ReadinessGate:
        """Fetch a readiness gate by id.

        Raises:
            NotFoundError: If no gate has this id
        """
        row = self._conn.execute(
            "SELECT * FROM readiness_gates WHERE id = ?", (gate_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Readiness gate {gate_id} not found")
        return self._row_to_gate(row)

    def find_gate_for_instructor(self, instructor_id: str) -> ReadinessGate | None:
        """Return the instructor's gate, or None if they have none."""
        row = self._conn.execute(
            "SELECT * FROM readiness_gates WHERE instructor_id = ?", (instructor_id,)
        ).fetchone()
        return self._row_to_gate(row) if row is not None else None

    def list_gates(self, chapter_id: str | None = None) -> list[ReadinessGate]:
        """List readiness gates, optionally scoped to one chapter."""
        if chapter_id is None:
            rows = self._conn.execute(
                "SELECT * FROM readiness_gates ORDER BY created_at DESC"
            ).fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM readiness_gates WHERE chapter_id = ? ORDER BY created_at DESC",
                (chapter_id,),
            ).fetchall()
        return [self._row_to_gate(row) for row in rows]

    def get_owner(self, ref: OwnerRef) -> Owner:
        """Fetch the application or gate a reference points to."""
        if ref.kind == OwnerKind.APPLICATION:
            return self.get_application(ref.id)
        return self.get_gate(ref.id)

    def set_owner_status(self, ref: OwnerRef, status: str) -> None:
        """Record a new owner status."""
        table = "applications" if ref.kind == OwnerKind.APPLICATION else "readiness_gates"
        cursor = self._conn.execute(
            f"UPDATE {table} SET status = ? WHERE id = ?", (status, ref.id)
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"{ref.kind.value} {ref.id} not found")

    def save_training_progress(self, progress: TrainingProgress) -> None:
        """Insert or replace an instructor's training counts."""
        self._conn.execute(
            """INSERT OR REPLACE INTO training_progress
            (instructor_id, required_modules, completed_modules) VALUES (?, ?, ?)""",
            (progress.instructor_id, progress.required_modules, progress.completed_modules),
        )

    def get_training_progress(self, instructor_id: str) -> TrainingProgress | None:
        """Return training counts, or None if the record is missing."""
        row = self._conn.execute(
            "SELECT * FROM training_progress WHERE instructor_id = ?", (instructor_id,)
        ).fetchone()
        if row is None:
            return None
        return TrainingProgress(
            instructor_id=row["instructor_id"],
            required_modules=row["required_modules"],
            completed_modules=row["completed_modules"],
        )

    # --- Slots ---

    def _row_to_slot(self, row: sqlite3.Row) -> InterviewSlot:
        return InterviewSlot(
            id=row["id"],
            owner_kind=OwnerKind(row["owner_kind"]),
            owner_id=row["owner_id"],
            scheduled_at=datetime.fromisoformat(row["scheduled_at"]),
            duration_minutes=row["duration_minutes"],
            meeting_link=row["meeting_link"],
            status=SlotStatus(row["status"]),
            proposed_by_role=Role(row["proposed_by_role"]),
            source=SlotSource(row["source"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            confirmed_at=_dt(row["confirmed_at"]),
            confirmed_by_role=Role(row["confirmed_by_role"]) if row["confirmed_by_role"] else None,
            completed_at=_dt(row["completed_at"]),
        )

    def create_slots(
        self,
        owner: OwnerRef,
        specs: Sequence[SlotSpec],
        proposed_by_role: Role,
        source: SlotSource = SlotSource.REVIEWER_POSTED,
    ) -> list[InterviewSlot]:
        """Create 1-3 PROPOSED slots for an owner in a single transaction.

        Raises:
            ValidationError: If fewer than 1 or more than 3 specs are given
        """
        if not 1 <= len(specs) <= MAX_SLOTS_PER_POST:
            raise ValidationError(
                f"Provide between 1 and {MAX_SLOTS_PER_POST} interview slots, got {len(specs)}"
            )
        created_at = datetime.now(UTC)
        slots = [
            InterviewSlot(
                id=_new_id(),
                owner_id=owner.id,
                owner_kind=owner.kind,
                scheduled_at=spec.scheduled_at,
                duration_minutes=spec.duration_minutes,
                meeting_link=spec.meeting_link,
                status=SlotStatus.PROPOSED,
                proposed_by_role=proposed_by_role,
                source=source,
                created_at=created_at,
            )
            for spec in specs
        ]
        with self.transaction():
            self._conn.executemany(
                """INSERT INTO slots
                (id, owner_kind, owner_id, scheduled_at, duration_minutes, meeting_link,
                 status, proposed_by_role, source, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                [
                    (
                        s.id,
                        s.owner_kind.value,
                        s.owner_id,
                        _ts(s.scheduled_at),
                        s.duration_minutes,
                        s.meeting_link,
                        s.status.value,
                        s.proposed_by_role.value,
                        s.source.value,
                        _ts(s.created_at),
                    )
                    for s in slots
                ],
            )
        return slots

    def get_slot(self, slot_id: str) -> InterviewSlot:
        """Fetch a slot by id.

        Raises:
            NotFoundError: If no slot has this id
        """
        row = self._conn.execute("SELECT * FROM slots WHERE id = ?", (slot_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"Interview slot {slot_id} not found")
        return self._row_to_slot(row)

    def get_slots(self, owner_id: str, owner_kind: OwnerKind | None = None) -> list[InterviewSlot]:
        """Return an owner's slots ordered by scheduled time."""
        if owner_kind is None:
            rows = self._conn.execute(
                "SELECT * FROM slots WHERE owner_id = ? ORDER BY scheduled_at ASC", (owner_id,)
            ).fetchall()
        else:
            rows = self._conn.execute(
                """SELECT * FROM slots WHERE owner_id = ? AND owner_kind = ?
                ORDER BY scheduled_at ASC""",
                (owner_id, owner_kind.value),
            ).fetchall()
        return [self._row_to_slot(row) for row in rows]

    def active_slot(self, owner: OwnerRef) -> InterviewSlot | None:
        """Return the owner's CONFIRMED or COMPLETED slot, if any."""
        row = self._conn.execute(
            """SELECT * FROM slots WHERE owner_kind = ? AND owner_id = ?
            AND status IN ('confirmed', 'completed')""",
            (owner.kind.value, owner.id),
        ).fetchone()
        return self._row_to_slot(row) if row is not None else None

    def transition_slot(
        self,
        slot_id: str,
        from_status: SlotStatus,
        to_status: SlotStatus,
        by_role: Role | None = None,
    ) -> InterviewSlot:
        """Guarded compare-and-set of a slot's status.

        Moving to CONFIRMED also requires that no sibling slot of the same
        owner is CONFIRMED or COMPLETED, and supersedes every other PROPOSED
        sibling in the same transaction.

        Raises:
            NotFoundError: If the slot does not exist
            ConflictError: If the slot is no longer in from_status, or a
                sibling already holds the owner's confirmed interview
            StateError: If the transition is not part of the slot lifecycle
        """
        if to_status not in _SLOT_TRANSITIONS.get(from_status, set()):
            raise StateError(f"Cannot move a slot from {from_status.value} to {to_status.value}")

        now = _ts(datetime.now(UTC))
        with self.transaction():
            slot = self.get_slot(slot_id)
            if slot.status != from_status:
                raise ConflictError(
                    f"Interview slot is already {slot.status.value}. Refresh and try again."
                )
            if to_status == SlotStatus.CONFIRMED:
                active = self.active_slot(slot.owner)
                if active is not None:
                    raise ConflictError(
                        "Another interview slot is already confirmed for this "
                        f"{slot.owner_kind.value.replace('_', ' ')}. Refresh and try again."
                    )

            assignments = ["status = ?"]
            params: list[object] = [to_status.value]
            if to_status == SlotStatus.CONFIRMED:
                assignments += ["confirmed_at = ?", "confirmed_by_role = ?"]
                params += [now, by_role.value if by_role is not None else None]
            elif to_status == SlotStatus.COMPLETED:
                assignments.append("completed_at = ?")
                params.append(now)
            try:
                cursor = self._conn.execute(
                    f"UPDATE slots SET {', '.join(assignments)} WHERE id = ? AND status = ?",
                    [*params, slot_id, from_status.value],
                )
            except sqlite3.IntegrityError as e:
                raise ConflictError(
                    "Another interview slot is already confirmed. Refresh and try again."
                ) from e
            if cursor.rowcount != 1:  # pragma: no cover - guarded by the read above
                raise ConflictError("Interview slot changed concurrently. Refresh and try again.")

            if to_status == SlotStatus.CONFIRMED:
                self._conn.execute(
                    """UPDATE slots SET status = ? WHERE owner_kind = ? AND owner_id = ?
                    AND id != ? AND status = ?""",
                    (
                        SlotStatus.SUPERSEDED.value,
                        slot.owner_kind.value,
                        slot.owner_id,
                        slot_id,
                        SlotStatus.PROPOSED.value,
                    ),
                )
            return self.get_slot(slot_id)

    # --- Availability requests ---

    def _row_to_request(self, row: sqlite3.Row) -> AvailabilityRequest:
        return AvailabilityRequest(
            id=row["id"],
            owner_kind=OwnerKind(row["owner_kind"]),
            owner_id=row["owner_id"],
            requested_by=row["requested_by"],
            preferred_windows=[
                datetime.fromisoformat(w) for w in json.loads(row["preferred_windows"])
            ],
            note=row["note"],
            status=RequestStatus(row["status"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            reviewed_by=row["reviewed_by"],
            reviewed_at=_dt(row["reviewed_at"]),
            review_notes=row["review_notes"],
        )

    def create_request(
        self,
        owner: OwnerRef,
        requested_by: str,
        preferred_windows: Sequence[datetime],
        note: str | None = None,
    ) -> AvailabilityRequest:
        """Create a PENDING availability request."""
        request = AvailabilityRequest(
            id=_new_id(),
            owner_id=owner.id,
            owner_kind=owner.kind,
            requested_by=requested_by,
            preferred_windows=list(preferred_windows),
            note=note,
        )
        self._conn.execute(
            """INSERT INTO availability_requests
            (id, owner_kind, owner_id, requested_by, preferred_windows, note, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                request.id,
                request.owner_kind.value,
                request.owner_id,
                request.requested_by,
                json.dumps([_ts(w) for w in request.preferred_windows]),
                request.note,
                request.status.value,
                _ts(request.created_at),
            ),
        )
        return request

    def get_request(self, request_id: str) -> AvailabilityRequest:
        """Fetch an availability request by id.

        Raises:
            NotFoundError: If no request has this id
        """
        row = self._conn.execute(
            "SELECT * FROM availability_requests WHERE id = ?", (request_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Availability request {request_id} not found")
        return self._row_to_request(row)

    def list_requests(
        self, owner: OwnerRef, status: RequestStatus | None = None
    ) -> list[AvailabilityRequest]:
        """Return an owner's requests, newest first."""
        sql = "SELECT * FROM availability_requests WHERE owner_kind = ? AND owner_id = ?"
        params: list[object] = [owner.kind.value, owner.id]
        if status is not None:
            sql += " AND status = ?"
            params.append(status.value)
        rows = self._conn.execute(f"{sql} ORDER BY created_at DESC", params).fetchall()
        return [self._row_to_request(row) for row in rows]

    def transition_request(
        self,
        request_id: str,
        from_status: RequestStatus,
        to_status: RequestStatus,
        reviewed_by: str | None = None,
        review_notes: str | None = None,
    ) -> AvailabilityRequest:
        """Guarded compare-and-set of a request's status.

        Raises:
            NotFoundError: If the request does not exist
            ConflictError: If the request is no longer in from_status
        """
        if to_status not in _REQUEST_TRANSITIONS.get(from_status, set()):
            raise StateError(
                f"Cannot move a request from {from_status.value} to {to_status.value}"
            )
        with self.transaction():
            current = self.get_request(request_id)
            cursor = self._conn.execute(
                """UPDATE availability_requests
                SET status = ?, reviewed_by = ?, reviewed_at = ?, review_notes = ?
                WHERE id = ? AND status = ?""",
                (
                    to_status.value,
                    reviewed_by,
                    _ts(datetime.now(UTC)) if reviewed_by is not None else None,
                    review_notes,
                    request_id,
                    from_status.value,
                ),
            )
            if cursor.rowcount != 1:
                raise ConflictError(
                    f"Availability request is already {current.status.value}. "
                    "Refresh and try again."
                )
            return self.get_request(request_id)

    def decline_pending_requests(
        self,
        owner: OwnerRef,
        reviewed_by: str,
        review_notes: str,
        except_id: str | None = None,
    ) -> int:
        """Decline every PENDING request of an owner (optionally sparing one)."""
        cursor = self._conn.execute(
            """UPDATE availability_requests
            SET status = ?, reviewed_by = ?, reviewed_at = ?, review_notes = ?
            WHERE owner_kind = ? AND owner_id = ? AND status = ? AND id != ?""",
            (
                RequestStatus.DECLINED.value,
                reviewed_by,
                _ts(datetime.now(UTC)),
                review_notes,
                owner.kind.value,
                owner.id,
                RequestStatus.PENDING.value,
                except_id or "",
            ),
        )
        return cursor.rowcount

    # --- Outcomes ---

    def write_outcome(self, outcome: InterviewOutcome) -> None:
        """Persist an owner's terminal outcome.

        Raises:
            ConflictError: If the owner already has an outcome
        """
        owner = outcome.owner
        if isinstance(outcome, HiringOutcome):
            extra = (outcome.content, outcome.strengths, outcome.concerns, None)
        else:
            extra = (None, None, None, outcome.review_notes)
        try:
            self._conn.execute(
                """INSERT INTO outcomes
                (owner_kind, owner_id, slot_id, value, content, strengths, concerns,
                 review_notes, recorded_by, recorded_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    owner.kind.value,
                    owner.id,
                    outcome.slot_id,
                    outcome.value,
                    *extra,
                    outcome.recorded_by,
                    _ts(outcome.recorded_at),
                ),
            )
        except sqlite3.IntegrityError as e:
            raise ConflictError(f"An outcome is already recorded for {owner}") from e

    def get_outcome(self, owner: OwnerRef) -> InterviewOutcome | None:
        """Return the owner's outcome, or None if the interview is still open."""
        row = self._conn.execute(
            "SELECT * FROM outcomes WHERE owner_kind = ? AND owner_id = ?",
            (owner.kind.value, owner.id),
        ).fetchone()
        if row is None:
            return None
        recorded_at = datetime.fromisoformat(row["recorded_at"])
        if owner.kind == OwnerKind.APPLICATION:
            return HiringOutcome(
                application_id=owner.id,
                slot_id=row["slot_id"],
                recommendation=Recommendation(row["value"]),
                content=row["content"],
                strengths=row["strengths"],
                concerns=row["concerns"],
                recorded_by=row["recorded_by"],
                recorded_at=recorded_at,
            )
        return ReadinessOutcome(
            gate_id=owner.id,
            slot_id=row["slot_id"],
            outcome=GateOutcome(row["value"]),
            review_notes=row["review_notes"],
            recorded_by=row["recorded_by"],
            recorded_at=recorded_at,
        )

    # --- Audit events ---

    def write_event(self, event: AuditEvent) -> None:
        """Append an audit event."""
        self._conn.execute(
            """INSERT INTO events
            (event_type, timestamp, actor_id, actor_role, owner_kind, owner_id,
             subject_id, metadata)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                event.event_type.value,
                _ts(event.timestamp),
                event.actor_id,
                event.actor_role.value,
                event.owner_kind.value if event.owner_kind is not None else None,
                event.owner_id,
                event.subject_id,
                json.dumps(event.metadata, default=str),
            ),
        )

    def _row_to_event(self, row: sqlite3.Row) -> AuditEvent:
        return AuditEvent(
            event_type=EventType(row["event_type"]),
            timestamp=datetime.fromisoformat(row["timestamp"]),
            actor_id=row["actor_id"],
            actor_role=Role(row["actor_role"]),
            owner_kind=OwnerKind(row["owner_kind"]) if row["owner_kind"] else None,
            owner_id=row["owner_id"],
            subject_id=row["subject_id"],
            metadata=json.loads(row["metadata"]),
        )

    def query_events(self, filter: AuditFilter | None = None) -> list[AuditEvent]:
        """Query audit events in chronological order.

        With a limit, the most recent events are kept.
        """
        sql = "SELECT * FROM events"
        params: list[object] = []
        if filter is not None:
            where_clause, params = filter.to_sql()
            limit_clause, limit_params = filter.limit_clause()
            if limit_clause:
                sql = f"{sql} {where_clause} ORDER BY id DESC {limit_clause}"
                rows = self._conn.execute(sql, params + limit_params).fetchall()
                return [self._row_to_event(row) for row in reversed(rows)]
            sql = f"{sql} {where_clause}"
        rows = self._conn.execute(f"{sql} ORDER BY id ASC", params).fetchall()
        return [self._row_to_event(row) for row in rows]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> SlotStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
