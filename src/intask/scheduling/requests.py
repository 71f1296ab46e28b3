"""Candidate-initiated availability requests."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

import pydantic

from intask.audit.models import AuditEvent, EventType
from intask.scheduling.base import ConflictError, ValidationError
from intask.scheduling.guards import (
    require_candidate,
    require_open,
    require_prerequisites,
    require_reviewer,
)
from intask.scheduling.models import (
    MAX_PREFERRED_WINDOWS,
    AvailabilityRequest,
    InterviewSlot,
    RequestStatus,
    SlotSource,
    SlotStatus,
)
from intask.scheduling.proposals import parse_slot_spec
from intask.scheduling.store import SlotStore
from intask.types import Actor, OwnerRef

_WINDOW = pydantic.TypeAdapter(datetime)


def _parse_windows(raw: Sequence[datetime | str]) -> list[datetime]:
    if not 1 <= len(raw) <= MAX_PREFERRED_WINDOWS:
        raise ValidationError(
            f"Provide between 1 and {MAX_PREFERRED_WINDOWS} preferred times, got {len(raw)}"
        )
    windows: list[datetime] = []
    for index, value in enumerate(raw, start=1):
        try:
            windows.append(_WINDOW.validate_python(value))
        except pydantic.ValidationError as e:
            raise ValidationError(f"Preferred time {index} is invalid: {value!r}") from e
    return windows


class AvailabilityRequestService:
    """Candidate proposes preferred windows; a reviewer accepts one of them."""

    def __init__(self, store: SlotStore, max_pending: int = 3) -> None:
        self.store = store
        self.max_pending = max_pending

    def submit_request(
        self,
        owner: OwnerRef,
        preferred_windows: Sequence[datetime | str],
        requested_by: Actor,
        note: str | None = None,
    ) -> AvailabilityRequest:
        """Create a PENDING request from the candidate.

        Raises:
            ValidationError: Fewer than 1 or more than 3 windows, or a bad timestamp
            AuthorizationError: Actor is not this owner's candidate
            StateError: Owner already has an outcome, or a prerequisite is unmet
            ConflictError: Interview already confirmed, or too many pending requests
        """
        windows = _parse_windows(preferred_windows)
        with self.store.transaction():
            record = self.store.get_owner(owner)
            require_candidate(requested_by, record)
            require_open(self.store, record)
            require_prerequisites(self.store, record)
            if self.store.active_slot(owner) is not None:
                raise ConflictError("Your interview is already scheduled")
            pending = self.store.list_requests(owner, RequestStatus.PENDING)
            if len(pending) >= self.max_pending:
                raise ConflictError(
                    f"You already have {len(pending)} pending availability requests"
                )
            request = self.store.create_request(
                owner, requested_by.user_id, windows, (note or "").strip() or None
            )
            self.store.write_event(
                AuditEvent.for_actor(
                    requested_by,
                    EventType.REQUEST_SUBMITTED,
                    owner=owner,
                    subject_id=request.id,
                    metadata={"windows": len(windows)},
                )
            )
        return request

    def accept_request(
        self,
        request_id: str,
        scheduled_at: datetime | str,
        duration_minutes: int,
        accepted_by: Actor,
        meeting_link: str | None = None,
    ) -> InterviewSlot:
        """Schedule a PENDING request as one CONFIRMED slot.

        The slot is confirmed through the store's guarded transition, so this
        races safely with slot confirmations for the same owner.

        Raises:
            ValidationError: Bad timestamp or duration
            NotFoundError: Unknown request
            AuthorizationError: Actor is not a reviewer for this owner
            StateError: Owner already has an outcome, or a prerequisite is unmet
            ConflictError: Request not PENDING, or owner already has a confirmed slot
        """
        spec = parse_slot_spec(
            {
                "scheduled_at": scheduled_at,
                "duration_minutes": duration_minutes,
                "meeting_link": meeting_link,
            }
        )
        with self.store.transaction():
            request = self.store.get_request(request_id)
            record = self.store.get_owner(request.owner)
            require_reviewer(accepted_by, record)
            require_open(self.store, record)
            require_prerequisites(self.store, record)
            if request.status != RequestStatus.PENDING:
                raise ConflictError(f"Availability request is already {request.status.value}")

            (slot,) = self.store.create_slots(
                request.owner, [spec], accepted_by.role, source=SlotSource.CANDIDATE_REQUESTED
            )
            slot = self.store.transition_slot(
                slot.id, SlotStatus.PROPOSED, SlotStatus.CONFIRMED, by_role=accepted_by.role
            )
            self.store.transition_request(
                request_id,
                RequestStatus.PENDING,
                RequestStatus.ACCEPTED,
                reviewed_by=accepted_by.user_id,
            )
            self.store.decline_pending_requests(
                request.owner,
                reviewed_by=accepted_by.user_id,
                review_notes="A different availability request was accepted.",
                except_id=request_id,
            )
            self.store.set_owner_status(request.owner, record.status_when_scheduled())
            self.store.write_event(
                AuditEvent.for_actor(
                    accepted_by,
                    EventType.REQUEST_ACCEPTED,
                    owner=request.owner,
                    subject_id=request_id,
                    metadata={"slot_id": slot.id, "scheduled_at": slot.scheduled_at.isoformat()},
                )
            )
        return slot

    def decline_request(
        self,
        request_id: str,
        declined_by: Actor,
        review_notes: str | None = None,
    ) -> AvailabilityRequest:
        """Reviewer declines a PENDING request; the candidate may submit new times."""
        with self.store.transaction():
            request = self.store.get_request(request_id)
            record = self.store.get_owner(request.owner)
            require_reviewer(declined_by, record)
            require_open(self.store, record)
            declined = self.store.transition_request(
                request_id,
                RequestStatus.PENDING,
                RequestStatus.DECLINED,
                reviewed_by=declined_by.user_id,
                review_notes=review_notes,
            )
            self.store.write_event(
                AuditEvent.for_actor(
                    declined_by,
                    EventType.REQUEST_DECLINED,
                    owner=request.owner,
                    subject_id=request_id,
                )
            )
        return declined

    def cancel_request(self, request_id: str, cancelled_by: Actor) -> AvailabilityRequest:
        """Candidate withdraws their own PENDING request."""
        with self.store.transaction():
            request = self.store.get_request(request_id)
            record = self.store.get_owner(request.owner)
            require_candidate(cancelled_by, record)
            require_open(self.store, record)
            cancelled = self.store.transition_request(
                request_id, RequestStatus.PENDING, RequestStatus.CANCELLED
            )
            self.store.write_event(
                AuditEvent.for_actor(
                    cancelled_by,
                    EventType.REQUEST_CANCELLED,
                    owner=request.owner,
                    subject_id=request_id,
                )
            )
        return cancelled
