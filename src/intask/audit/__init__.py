"""Intask audit — structured trail of scheduling state changes."""

from intask.audit.models import AuditEvent, EventType
from intask.audit.query import AuditFilter

__all__ = [
    "AuditEvent",
    "AuditFilter",
    "EventType",
]
