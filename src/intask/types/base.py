"""Foundational types for interview orchestration.

These types are shared across all modules and form the core vocabulary of the system:
- Role: who is acting (reviewers vs. candidates)
- OwnerKind / OwnerRef: which pipeline record an interview belongs to
- Actor: the acting user as resolved by the surrounding application

These types have no dependencies on other intask modules (pure foundation layer).
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class Role(StrEnum):
    """Role flags supplied by the host application's session layer."""

    ADMIN = "admin"
    CHAPTER_LEAD = "chapter_lead"
    INSTRUCTOR = "instructor"
    APPLICANT = "applicant"

    @property
    def is_reviewer(self) -> bool:
        """Admins and chapter leads review candidates."""
        return self in (Role.ADMIN, Role.CHAPTER_LEAD)


class OwnerKind(StrEnum):
    """The two pipelines an interview can belong to."""

    APPLICATION = "application"
    READINESS_GATE = "readiness_gate"


class OwnerRef(BaseModel):
    """Polymorphic reference to an Application or a ReadinessGate."""

    kind: OwnerKind
    id: str

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


class Actor(BaseModel):
    """The user issuing a command or reading the task feed.

    Authentication and role resolution happen outside this package; the actor
    arrives already resolved.
    """

    user_id: str
    role: Role
    chapter_id: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_reviewer(self) -> bool:
        """Check if the actor may perform reviewer-only actions."""
        return self.role.is_reviewer

    @property
    def is_admin(self) -> bool:
        """Check if the actor is an admin."""
        return self.role == Role.ADMIN
