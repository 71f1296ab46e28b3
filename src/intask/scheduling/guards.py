"""Role and state guards shared by the scheduling services."""

from __future__ import annotations

from intask.scheduling.base import AuthorizationError, HasSlots, StateError
from intask.scheduling.models import Owner
from intask.scheduling.prerequisites import owner_prerequisites
from intask.scheduling.store import SlotStore
from intask.types import Actor


def require_reviewer(actor: Actor, owner: HasSlots) -> None:
    """Allow admins everywhere and chapter leads inside their own chapter.

    Raises:
        AuthorizationError: If the actor may not review this owner
    """
    if not actor.is_reviewer:
        raise AuthorizationError("Reviewer role required for this action")
    if not actor.is_admin and actor.chapter_id != owner.owning_chapter():
        raise AuthorizationError("Chapter leads can only manage candidates in their chapter")


def require_candidate(actor: Actor, owner: HasSlots) -> None:
    """Allow only the person being interviewed, acting in a candidate role.

    Raises:
        AuthorizationError: If the actor is a reviewer or a different user
    """
    if actor.is_reviewer:
        raise AuthorizationError("Only the candidate can perform this action")
    if actor.user_id != owner.candidate_user_id():
        raise AuthorizationError("You can only manage your own interview")


def require_participant(actor: Actor, owner: HasSlots) -> None:
    """Allow the candidate or an authorized reviewer."""
    if actor.is_reviewer:
        require_reviewer(actor, owner)
    else:
        require_candidate(actor, owner)


def require_open(store: SlotStore, owner: HasSlots) -> None:
    """Reject actions on owners whose interview is already decided.

    Raises:
        StateError: If an outcome is recorded or the owner is closed
    """
    ref = owner.owner_ref()
    if store.get_outcome(ref) is not None:
        raise StateError(f"Interview for {ref} is already completed")
    if owner.is_closed():
        raise StateError(f"{ref} is closed to interview scheduling")


def require_prerequisites(store: SlotStore, owner: Owner) -> None:
    """Reject scheduling while a prerequisite is unmet.

    Raises:
        StateError: Listing every unmet prerequisite
    """
    blockers = [p.blocker for p in owner_prerequisites(store, owner) if not p.met]
    if blockers:
        raise StateError(f"Interview is blocked: {' '.join(blockers)}")
