"""Intask scheduling — slot store, proposal, request, confirmation, completion.

Public API:
    Store: SlotStore
    Services: SlotProposalService, AvailabilityRequestService,
              SlotConfirmationService, InterviewCompletionService
    Capabilities: HasSlots, HasOutcome
    Errors: SchedulingError, ValidationError, NotFoundError, ConflictError,
            AuthorizationError, StateError
"""

from intask.scheduling.base import (
    AuthorizationError,
    ConflictError,
    HasOutcome,
    HasSlots,
    NotFoundError,
    SchedulingError,
    StateError,
    ValidationError,
)
from intask.scheduling.completion import InterviewCompletionService
from intask.scheduling.confirmation import SlotConfirmationService
from intask.scheduling.models import (
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
from intask.scheduling.proposals import SlotProposalService, suggest_follow_up_times
from intask.scheduling.requests import AvailabilityRequestService
from intask.scheduling.store import SlotStore

__all__ = [
    "Application",
    "ApplicationStatus",
    "AuthorizationError",
    "AvailabilityRequest",
    "AvailabilityRequestService",
    "ConflictError",
    "GateOutcome",
    "GateStatus",
    "HasOutcome",
    "HasSlots",
    "HiringOutcome",
    "InterviewCompletionService",
    "InterviewOutcome",
    "InterviewSlot",
    "NotFoundError",
    "Owner",
    "ReadinessGate",
    "ReadinessOutcome",
    "Recommendation",
    "RequestStatus",
    "SchedulingError",
    "SlotConfirmationService",
    "SlotProposalService",
    "SlotSource",
    "SlotSpec",
    "SlotStatus",
    "SlotStore",
    "StateError",
    "TrainingProgress",
    "ValidationError",
    "suggest_follow_up_times",
]
