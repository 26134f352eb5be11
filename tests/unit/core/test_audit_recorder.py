"""Unit tests for AuditRecorder."""

import asyncio

import pytest

from src.pupfinance.core.services.audit import (
    REDACTION_MARKER,
    AuditEvent,
    AuditRecorder,
    DatabaseAuditSink,
    redact,
)
from src.pupfinance.entities.core.audit_entry import AuditEntryRepository
from tests.fixtures.services import MemoryAuditSink


def event(method: str = "PATCH", body=None, path: str = "/users/me") -> AuditEvent:
    return AuditEvent(
        subject_id="auth0|abc",
        method=method,
        path=path,
        ip_address="203.0.113.9",
        user_agent="pytest",
        body=body,
    )


class TestRedaction:
    def test_masks_denylisted_keys_case_insensitively(self):
        body = {
            "password": "hunter2",
            "Token": "abc",
            "SECRET": "s",
            "creditCard": "4111",
            "givenName": "Rex",
        }

        assert redact(body) == {
            "password": REDACTION_MARKER,
            "Token": REDACTION_MARKER,
            "SECRET": REDACTION_MARKER,
            "creditCard": REDACTION_MARKER,
            "givenName": "Rex",
        }
        assert body["password"] == "hunter2"

    def test_masks_each_object_of_a_list_body(self):
        body = [{"password": "hunter2", "id": 1}, {"creditCard": "4111"}, "plain"]

        assert redact(body) == [
            {"password": REDACTION_MARKER, "id": 1},
            {"creditCard": REDACTION_MARKER},
            "plain",
        ]
        assert body[0]["password"] == "hunter2"

    def test_scalar_bodies_pass_through(self):
        assert redact(["a", "b"]) == ["a", "b"]
        assert redact("text") == "text"
        assert redact(None) is None


class TestBuildEntry:
    def test_records_action_and_redacted_body(self):
        entry = AuditRecorder(persist=False).build_entry(
            event(body={"username": "rex", "password": "hunter2"})
        )

        assert entry.user_id == "auth0|abc"
        assert entry.action == "PATCH /users/me"
        assert entry.ip_address == "203.0.113.9"
        assert entry.user_agent == "pytest"
        assert entry.metadata == {
            "method": "PATCH",
            "path": "/users/me",
            "body": {"username": "rex", "password": REDACTION_MARKER},
        }

    def test_list_body_never_carries_raw_secrets(self):
        entry = AuditRecorder(persist=False).build_entry(
            event(method="POST", body=[{"password": "hunter2"}])
        )

        assert entry.metadata["body"] == [{"password": REDACTION_MARKER}]
        assert "hunter2" not in str(entry.metadata)

    @pytest.mark.parametrize("method", ["GET", "head", "OPTIONS"])
    def test_body_omitted_for_read_methods(self, method):
        entry = AuditRecorder(persist=False).build_entry(
            event(method=method, body={"password": "x"})
        )

        assert "body" not in entry.metadata


class TestRecord:
    def test_console_only_when_persistence_disabled(self, memory_sink):
        recorder = AuditRecorder(memory_sink, persist=False)

        entry = recorder.record(event())

        assert entry is not None
        assert recorder.pending == 0

    def test_without_sink_nothing_is_queued(self):
        recorder = AuditRecorder(None, persist=True)

        recorder.record(event())

        assert recorder.persist is False
        assert recorder.pending == 0

    def test_drop_oldest_keeps_newest_entries(self, memory_sink):
        recorder = AuditRecorder(memory_sink, queue_size=2, drop_policy="drop_oldest")

        entries = [recorder.record(event(path=f"/p{i}")) for i in range(3)]

        assert recorder.pending == 2
        assert recorder.dropped_count == 1
        assert [recorder._queue.get_nowait().id for _ in range(2)] == [
            entries[1].id,
            entries[2].id,
        ]

    def test_drop_newest_keeps_oldest_entries(self, memory_sink):
        recorder = AuditRecorder(memory_sink, queue_size=2, drop_policy="drop_newest")

        entries = [recorder.record(event(path=f"/p{i}")) for i in range(3)]

        assert recorder.dropped_count == 1
        assert [recorder._queue.get_nowait().id for _ in range(2)] == [
            entries[0].id,
            entries[1].id,
        ]

    def test_record_never_raises(self, memory_sink, monkeypatch):
        recorder = AuditRecorder(memory_sink)

        def boom(_event):
            raise RuntimeError("bad event")

        monkeypatch.setattr(recorder, "build_entry", boom)

        assert recorder.record(event()) is None


class TestWorker:
    @pytest.mark.asyncio
    async def test_worker_delivers_entries_to_sink(self, memory_sink):
        recorder = AuditRecorder(memory_sink)
        await recorder.start()
        try:
            entry = recorder.record(event())
            await asyncio.wait_for(recorder.flush(), timeout=5)
        finally:
            await recorder.stop()

        assert [e.id for e in memory_sink.entries] == [entry.id]

    @pytest.mark.asyncio
    async def test_sink_failures_are_swallowed(self):
        sink = MemoryAuditSink(fail=True)
        recorder = AuditRecorder(sink)
        await recorder.start()
        try:
            recorder.record(event())
            recorder.record(event())
            await asyncio.wait_for(recorder.flush(), timeout=5)
            sink.fail = False
            recorder.record(event(path="/after"))
            await asyncio.wait_for(recorder.flush(), timeout=5)
        finally:
            await recorder.stop()

        assert [e.action for e in sink.entries] == ["PATCH /after"]

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, memory_sink):
        recorder = AuditRecorder(memory_sink)
        await recorder.start()
        await recorder.stop()
        await recorder.stop()

    @pytest.mark.asyncio
    async def test_database_sink_persists_redacted_entry(self, engine):
        from sqlmodel import Session

        recorder = AuditRecorder(
            DatabaseAuditSink(lambda: Session(engine)), persist=True
        )
        await recorder.start()
        try:
            recorder.record(event(body={"token": "abc", "givenName": "Rex"}))
            await asyncio.wait_for(recorder.flush(), timeout=5)
        finally:
            await recorder.stop()

        with Session(engine) as session:
            [stored] = AuditEntryRepository(session).list_for_user("auth0|abc")
        assert stored.metadata["body"] == {"token": REDACTION_MARKER, "givenName": "Rex"}
        assert stored.action == "PATCH /users/me"
