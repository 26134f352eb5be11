"""Entity: AuditEntry."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.pupfinance.entities.core._base import new_id, utc_now


class AuditEntry(BaseModel):
    """Append-only record of one authenticated request.

    ``user_id`` is the token subject as presented; it is not a reference to a
    stored user and survives that user's deletion.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: str = Field(default_factory=new_id)
    user_id: str
    action: str = Field(description="'METHOD /path'")
    ip_address: str | None = None
    user_agent: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)
