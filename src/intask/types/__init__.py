"""Foundational vocabulary shared by every intask module."""

from intask.types.base import Actor, OwnerKind, OwnerRef, Role

__all__ = [
    "Actor",
    "OwnerKind",
    "OwnerRef",
    "Role",
]
