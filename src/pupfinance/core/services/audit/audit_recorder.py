"""Audit trail for authenticated requests.

``record`` is synchronous and never raises: it builds a redacted entry, logs
it, and hands it to a bounded queue drained by a background task. A slow or
failing audit store can cost entries but never request latency.
"""

import asyncio
import contextlib
from collections.abc import Mapping
from typing import Any, Literal

from loguru import logger
from pydantic import BaseModel, Field

from src.pupfinance.core.services.audit.sinks import AuditSink
from src.pupfinance.entities.core.audit_entry import AuditEntry
from src.pupfinance.runtime.config.config_data import ConfigData

REDACTION_MARKER = "[REDACTED]"
REDACTED_KEYS = frozenset({"password", "token", "secret", "creditcard"})
BODYLESS_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

DropPolicy = Literal["drop_oldest", "drop_newest"]


class AuditEvent(BaseModel):
    """What the HTTP layer knows about a request worth auditing."""

    subject_id: str
    method: str
    path: str
    ip_address: str | None = None
    user_agent: str | None = None
    body: Any = Field(default=None, description="Parsed JSON body, if any")


def _mask(body: Mapping) -> dict:
    return {
        key: REDACTION_MARKER if str(key).lower() in REDACTED_KEYS else value
        for key, value in body.items()
    }


def redact(body: Any) -> Any:
    """Shallow copy of a body with denylisted keys masked.

    A top-level list has each of its mapping elements masked the same way.
    """
    if isinstance(body, Mapping):
        return _mask(body)
    if isinstance(body, list):
        return [_mask(item) if isinstance(item, Mapping) else item for item in body]
    return body


class AuditRecorder:
    def __init__(
        self,
        sink: AuditSink | None = None,
        *,
        persist: bool = True,
        queue_size: int = 1000,
        drop_policy: DropPolicy = "drop_oldest",
    ) -> None:
        self._sink = sink
        self._persist = persist and sink is not None
        self._drop_policy = drop_policy
        self._queue: asyncio.Queue[AuditEntry] = asyncio.Queue(maxsize=queue_size)
        self._worker: asyncio.Task | None = None
        self.dropped_count = 0

    @classmethod
    def from_config(cls, config: ConfigData, sink: AuditSink | None) -> "AuditRecorder":
        return cls(
            sink,
            persist=config.audit_persistence_enabled,
            queue_size=config.audit.queue_size,
            drop_policy=config.audit.drop_policy,
        )

    @property
    def persist(self) -> bool:
        return self._persist

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def build_entry(self, event: AuditEvent) -> AuditEntry:
        method = event.method.upper()
        metadata: dict[str, Any] = {"method": method, "path": event.path}
        if method not in BODYLESS_METHODS and event.body is not None:
            metadata["body"] = redact(event.body)
        return AuditEntry(
            user_id=event.subject_id,
            action=f"{method} {event.path}",
            ip_address=event.ip_address,
            user_agent=event.user_agent,
            metadata=metadata,
        )

    def record(self, event: AuditEvent) -> AuditEntry | None:
        try:
            entry = self.build_entry(event)
            logger.info("[AUDIT] {} {}", entry.user_id, entry.action)
            if self._persist:
                self._enqueue(entry)
            return entry
        except Exception:
            logger.exception("Failed to record audit entry for {}", event.path)
            return None

    def _enqueue(self, entry: AuditEntry) -> None:
        try:
            self._queue.put_nowait(entry)
            return
        except asyncio.QueueFull:
            self.dropped_count += 1

        if self._drop_policy == "drop_oldest":
            dropped = self._queue.get_nowait()
            self._queue.task_done()
            self._queue.put_nowait(entry)
        else:
            dropped = entry
        logger.warning(
            "Audit queue full; dropped entry {} ({} dropped so far)",
            dropped.id,
            self.dropped_count,
        )

    async def start(self) -> None:
        if not self._persist or self._worker is not None:
            return
        self._worker = asyncio.create_task(self._run(), name="audit-recorder")
        logger.info("Audit recorder started")

    async def stop(self) -> None:
        """Stop the worker. Entries still queued are discarded."""
        if self._worker is None:
            return
        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
        if self._queue.qsize():
            logger.warning("Audit recorder stopped with {} entries unwritten", self._queue.qsize())
        else:
            logger.info("Audit recorder stopped")

    async def flush(self) -> None:
        """Wait until every queued entry has been handed to the sink."""
        if self._worker is not None:
            await self._queue.join()

    async def _run(self) -> None:
        assert self._sink is not None
        while True:
            entry = await self._queue.get()
            try:
                await self._sink.write(entry)
            except Exception:
                logger.exception("Failed to persist audit entry {}", entry.id)
            finally:
                self._queue.task_done()
