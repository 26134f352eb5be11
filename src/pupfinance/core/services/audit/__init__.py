"""Audit services."""

from .audit_recorder import (
    REDACTION_MARKER,
    AuditEvent,
    AuditRecorder,
    redact,
)
from .sinks import AuditSink, DatabaseAuditSink

__all__ = [
    "REDACTION_MARKER",
    "AuditEvent",
    "AuditRecorder",
    "AuditSink",
    "DatabaseAuditSink",
    "redact",
]
