"""Administrative read access to the audit trail."""

from fastapi import APIRouter, Depends, Query

from src.pupfinance.api.http.deps import (
    get_audit_entry_repository,
    require_any_role,
    require_permissions,
)
from src.pupfinance.entities.core.audit_entry import AuditEntry, AuditEntryRepository

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[
        Depends(require_any_role("admin")),
        Depends(require_permissions("read:audit_logs")),
    ],
)


@router.get("/audit", response_model=list[AuditEntry])
def list_audit_entries(
    user_id: str | None = Query(default=None, alias="userId"),
    limit: int = Query(default=50, ge=1, le=500),
    entries: AuditEntryRepository = Depends(get_audit_entry_repository),
) -> list[AuditEntry]:
    """Most recent audit entries, optionally for a single subject."""
    return entries.list_for_user(user_id, limit=limit)
