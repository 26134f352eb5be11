"""Entities organized by business concept.

Each entity has its own package containing:
- entity.py: Domain model
- table.py: Database persistence model
- repository.py: Data access layer
"""

from .core.audit_entry import AuditEntry, AuditEntryRepository, AuditEntryTable
from .core.user import User, UserRepository, UserTable

__all__ = [
    "AuditEntry",
    "AuditEntryRepository",
    "AuditEntryTable",
    "User",
    "UserRepository",
    "UserTable",
]
