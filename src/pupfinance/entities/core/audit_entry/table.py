"""AuditEntry database table model."""

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from src.pupfinance.entities.core._base import new_id, utc_now


class AuditEntryTable(SQLModel, table=True):
    """Persistence model for audit entries.

    The JSON column is named ``metadata`` in the database; the attribute is
    ``request_metadata`` because ``metadata`` is taken on declarative models.
    """

    __table_args__ = (sa.Index("ix_auditentry_user_timestamp", "user_id", "timestamp"),)

    id: str = Field(primary_key=True, default_factory=new_id)
    user_id: str
    action: str
    ip_address: str | None = None
    user_agent: str | None = None
    request_metadata: dict[str, Any] = Field(
        default_factory=dict, sa_column=sa.Column("metadata", sa.JSON, nullable=False)
    )
    timestamp: datetime = Field(
        default_factory=utc_now, sa_type=sa.DateTime(timezone=True), index=True
    )
