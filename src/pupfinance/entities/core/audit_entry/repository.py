"""Data-access layer for audit entries."""

from sqlmodel import Session, select

from src.pupfinance.entities.core.audit_entry.entity import AuditEntry
from src.pupfinance.entities.core.audit_entry.table import AuditEntryTable


def _to_entity(row: AuditEntryTable) -> AuditEntry:
    return AuditEntry(
        id=row.id,
        user_id=row.user_id,
        action=row.action,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        metadata=row.request_metadata,
        timestamp=row.timestamp,
    )


class AuditEntryRepository:
    """Append and query audit entries. Entries are never updated."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, entry: AuditEntry) -> AuditEntry:
        row = AuditEntryTable(
            id=entry.id,
            user_id=entry.user_id,
            action=entry.action,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            request_metadata=entry.metadata,
            timestamp=entry.timestamp,
        )
        self._session.add(row)
        self._session.commit()
        return entry

    def list_for_user(self, user_id: str | None = None, limit: int = 50) -> list[AuditEntry]:
        """Newest first; all users when ``user_id`` is None."""
        statement = select(AuditEntryTable)
        if user_id is not None:
            statement = statement.where(AuditEntryTable.user_id == user_id)
        statement = statement.order_by(AuditEntryTable.timestamp.desc()).limit(limit)
        return [_to_entity(row) for row in self._session.exec(statement).all()]
