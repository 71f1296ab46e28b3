"""Scheduling base classes — owner capability interfaces and errors."""

from __future__ import annotations

from abc import ABC, abstractmethod

from intask.types import OwnerRef


class SchedulingError(Exception):
    """Base class for every error raised by the scheduling services."""

    def __init__(self, message: str) -> None:
        """Initialize the error with a user-facing message."""
        self.message = message
        super().__init__(message)


class ValidationError(SchedulingError):
    """Missing or malformed input (bad timestamp, duration, slot count)."""


class NotFoundError(SchedulingError):
    """Unknown application, gate, slot, or request id."""


class ConflictError(SchedulingError):
    """Another action won the race, or the record already moved on."""


class AuthorizationError(SchedulingError):
    """The acting role may not perform this action on this owner."""


class StateError(SchedulingError):
    """The owner is in a state that does not allow the action."""


class HasSlots(ABC):
    """Capability of an owner that can hold interview slots and requests."""

    @abstractmethod
    def owner_ref(self) -> OwnerRef:
        """Return the polymorphic reference used as the slot owner key."""
        ...

    @abstractmethod
    def candidate_user_id(self) -> str:
        """Return the id of the person being interviewed."""
        ...

    @abstractmethod
    def owning_chapter(self) -> str | None:
        """Return the chapter that scopes reviewer access, if any."""
        ...

    @abstractmethod
    def display_name(self) -> str:
        """Return the candidate's display name."""
        ...

    @abstractmethod
    def is_closed(self) -> bool:
        """Check if the owner reached a final status outside the interview flow."""
        ...

    @abstractmethod
    def status_when_scheduled(self) -> str:
        """Return the owner status to record once a slot is confirmed."""
        ...


class HasOutcome(ABC):
    """Capability of an owner whose interview ends in a terminal outcome."""

    @abstractmethod
    def status_after_outcome(self, outcome: str) -> str:
        """Return the owner status implied by a recorded outcome value."""
        ...
