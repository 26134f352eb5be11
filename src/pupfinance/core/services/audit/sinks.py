"""Destinations for audit entries leaving the recorder's queue."""

import asyncio
from collections.abc import Callable
from typing import Protocol

from sqlmodel import Session

from src.pupfinance.entities.core.audit_entry import AuditEntry, AuditEntryRepository


class AuditSink(Protocol):
    async def write(self, entry: AuditEntry) -> None: ...


class DatabaseAuditSink:
    """Persist entries through ``AuditEntryRepository`` on a worker thread."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    async def write(self, entry: AuditEntry) -> None:
        await asyncio.to_thread(self._write_blocking, entry)

    def _write_blocking(self, entry: AuditEntry) -> None:
        with self._session_factory() as session:
            AuditEntryRepository(session).create(entry)
